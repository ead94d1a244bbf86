# map_generator/preview/coordinator.py

"""
================================================================================
PREVIEW COORDINATOR
================================================================================
Serves generated layers to a preview consumer as its parameters change.

Flow per request:
    options -> cache key -> cache hit? deliver immediately
                         -> no worker? generate synchronously and deliver
                         -> otherwise post to the worker and wait for poll()

Ordering:
    Every request gets a new, increasing id. Only the response whose id is the
    most recently issued one is applied; older responses are dropped silently,
    so under rapid edits the last parameters always win.

Failure handling:
    - The worker cannot be created: stay in synchronous mode for good.
    - The worker fails on the active request: regenerate synchronously with
      the latest options and deliver that result in its place.

All cache mutation happens inside request() and poll(), on the caller's own
thread, so no locking is needed.
================================================================================
"""

import logging
import time

from .. import config as DEFAULTS
from ..layers import GeneratedMapLayers
from ..options import GenerationOptions, PIPELINE_PREVIEW, cache_key
from .cache import LayerCache
from .messages import GenerationRequest, GenerationResponse
from .worker import GenerationWorker, run_pipeline

# --- Wait Loop Constants ---
POLL_INTERVAL_SECONDS = 0.01


class PreviewCoordinator:
    """Owns one layer cache and one background worker for a single consumer."""

    def __init__(self, config: dict = None, logger: logging.Logger = None,
                 pipeline: str = PIPELINE_PREVIEW, cache_capacity: int = DEFAULTS.CACHE_CAPACITY,
                 use_worker: bool = True, worker_factory=GenerationWorker, on_layers=None):
        """
        Args:
            config (dict): Generator overrides passed to every generation run.
            logger (logging.Logger): The logger instance for all output.
            pipeline (str): 'preview' or 'simulation'.
            cache_capacity (int): Maximum number of cached layer sets.
            use_worker (bool): If False, always generate synchronously.
            worker_factory: Callable(config, logger) returning a worker handle
                with post(), collect() and terminate().
            on_layers: Optional callback invoked with every delivered result.
        """
        self.logger = logger or logging.getLogger(__name__)
        self.config = config or {}
        self.pipeline = pipeline
        self.on_layers = on_layers
        self.cache = LayerCache(cache_capacity, self.logger)

        # Validates the pipeline name up front.
        cache_key(GenerationOptions(), pipeline)

        self.active_request_id = 0
        self.latest_options = None
        self._outstanding_request_id = None
        self._layers = None

        self.worker = None
        if use_worker:
            try:
                self.worker = worker_factory(self.config, self.logger)
            except Exception as e:
                self.logger.warning(
                    f"Background worker unavailable, generating synchronously: {e}", exc_info=True
                )

    # --- State ---
    @property
    def layers(self) -> GeneratedMapLayers:
        """The most recently delivered layers, or None."""
        return self._layers

    @property
    def is_generating(self) -> bool:
        return self._outstanding_request_id is not None

    @property
    def is_degraded(self) -> bool:
        """True once the coordinator runs without a background worker."""
        return self.worker is None

    # --- Requests ---
    def request(self, options) -> GeneratedMapLayers:
        """
        Requests layers for new options. Accepts GenerationOptions or a dict of
        raw form values.

        Returns the layers when they are available right away (cache hit or
        synchronous generation), otherwise None; the result is then delivered
        by a later poll().
        """
        if not isinstance(options, GenerationOptions):
            options = GenerationOptions.from_dict(options)
        key = cache_key(options, self.pipeline)

        self.latest_options = options
        self.active_request_id += 1
        request_id = self.active_request_id

        cached = self.cache.get(key)
        if cached is not None:
            self.logger.debug(f"Request {request_id}: cache hit")
            self._outstanding_request_id = None
            self._deliver(cached)
            return cached

        if self.worker is None:
            return self._generate_now(options, key)

        request = GenerationRequest(request_id=request_id, cache_key=key, options=options, pipeline=self.pipeline)
        try:
            self.worker.post(request)
        except Exception as e:
            self.logger.warning(f"Request {request_id}: could not reach worker, switching to synchronous mode: {e}")
            self._dispose_worker()
            return self._generate_now(options, key)

        self._outstanding_request_id = request_id
        self.logger.debug(f"Request {request_id}: dispatched to worker")
        return None

    def poll(self) -> bool:
        """
        Handles every job the worker has finished since the last call.
        Returns True if new layers were delivered.
        """
        if self.worker is None:
            return False
        delivered = False
        for request, response, error in self.worker.collect():
            if error is not None:
                delivered = self.handle_worker_error(request, error) or delivered
            else:
                delivered = self.handle_response(response) or delivered
        return delivered

    def wait(self, timeout: float = None) -> GeneratedMapLayers:
        """Polls until no request is outstanding, or until `timeout` seconds pass."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while self.is_generating:
            self.poll()
            if not self.is_generating:
                break
            if deadline is not None and time.monotonic() >= deadline:
                break
            time.sleep(POLL_INTERVAL_SECONDS)
        return self._layers

    # --- Message Handling ---
    def handle_response(self, response: GenerationResponse) -> bool:
        """Applies a worker response if it answers the active request."""
        if response.request_id != self.active_request_id or self._outstanding_request_id is None:
            self.logger.debug(f"Discarding stale response for request {response.request_id}")
            return False

        if response.cache_hit:
            self.logger.debug(f"Request {response.request_id}: served from the worker cache")
        self.cache.put(response.cache_key, response.layers)
        self._outstanding_request_id = None
        self._deliver(response.layers)
        return True

    def handle_worker_error(self, request: GenerationRequest, error: BaseException) -> bool:
        """
        Recovers from a worker failure on the active request by generating the
        latest options synchronously. The worker is not retried for it.
        """
        if request.request_id != self.active_request_id or self._outstanding_request_id is None:
            self.logger.debug(f"Ignoring worker failure for superseded request {request.request_id}")
            return False

        self.logger.warning(
            f"Worker failed on request {request.request_id}, regenerating synchronously: {error}",
            exc_info=error
        )
        options = self.latest_options
        self._generate_now(options, cache_key(options, self.pipeline))
        return True

    # --- Internals ---
    def _generate_now(self, options: GenerationOptions, key: str) -> GeneratedMapLayers:
        layers = run_pipeline(self.pipeline, options, self.config, self.logger)
        self.cache.put(key, layers)
        self._outstanding_request_id = None
        self._deliver(layers)
        return layers

    def _deliver(self, layers: GeneratedMapLayers) -> None:
        self._layers = layers
        if self.on_layers is not None:
            self.on_layers(layers)

    def _dispose_worker(self) -> None:
        if self.worker is not None:
            self.worker.terminate()
            self.worker = None

    def close(self) -> None:
        """Disposes of the worker and the cache. Outstanding work is abandoned."""
        self._dispose_worker()
        self._outstanding_request_id = None
        self.cache.clear()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
