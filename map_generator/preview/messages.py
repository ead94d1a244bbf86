# map_generator/preview/messages.py

"""
Messages exchanged with the generation worker. Both are plain picklable
values, so the worker only ever sees a copy of the caller's state.
"""

from dataclasses import dataclass

from ..layers import GeneratedMapLayers
from ..options import GenerationOptions, PIPELINE_PREVIEW


@dataclass(frozen=True)
class GenerationRequest:
    request_id: int
    cache_key: str
    options: GenerationOptions
    pipeline: str = PIPELINE_PREVIEW


@dataclass(frozen=True, eq=False)
class GenerationResponse:
    request_id: int
    cache_key: str
    layers: GeneratedMapLayers
    cache_hit: bool = False
