# map_generator/preview/cache.py

import logging
from collections import OrderedDict

from .. import config as DEFAULTS
from ..layers import GeneratedMapLayers


class LayerCache:
    """
    A bounded least-recently-used cache of generated layers, keyed by the
    canonical option key. Each PreviewCoordinator owns exactly one.
    """
    def __init__(self, capacity: int = DEFAULTS.CACHE_CAPACITY, logger: logging.Logger = None):
        if capacity <= 0:
            raise ValueError(f"Cache capacity must be positive, got {capacity}")
        self.capacity = capacity
        self.logger = logger or logging.getLogger(__name__)
        self._entries = OrderedDict()

    def __len__(self):
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def keys(self) -> list:
        """Keys from least to most recently used."""
        return list(self._entries.keys())

    def get(self, key: str) -> GeneratedMapLayers:
        """Returns the cached layers and marks them most recently used, or None."""
        layers = self._entries.get(key)
        if layers is not None:
            self._entries.move_to_end(key)
        return layers

    def put(self, key: str, layers: GeneratedMapLayers) -> None:
        self._entries[key] = layers
        self._entries.move_to_end(key)
        if len(self._entries) > self.capacity:
            evicted_key, _ = self._entries.popitem(last=False)
            self.logger.debug(f"Evicted least recently used layers '{evicted_key}'")

    def clear(self) -> None:
        self._entries.clear()
