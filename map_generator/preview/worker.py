# map_generator/preview/worker.py

"""
================================================================================
BACKGROUND GENERATION WORKER
================================================================================
Runs generation jobs in a separate process so the caller never blocks.

- `run_generation_job` is the top-level, pickle-able job function executed
  inside the worker process. Each worker process keeps its own small LRU of
  finished layers, so a key the caller has already evicted can still be
  answered without regenerating.
- `GenerationWorker` owns a single-process pool. The caller posts requests and
  later collects finished jobs from its own thread; the worker never touches
  the caller's cache or state.
THIS MODULE MUST NOT IMPORT ANY RENDERING CODE.
================================================================================
"""

import logging
import multiprocessing
import os

from .. import config as DEFAULTS
from ..generator import generate_map_layers
from ..layers import GeneratedMapLayers
from ..options import GenerationOptions, PIPELINE_PREVIEW, PIPELINE_SIMULATION
from ..simulation import generate_simulation_layers
from .cache import LayerCache
from .messages import GenerationRequest, GenerationResponse

PIPELINE_FUNCTIONS = {
    PIPELINE_PREVIEW: generate_map_layers,
    PIPELINE_SIMULATION: generate_simulation_layers,
}

# Lives in the worker process; never shared with the caller.
_worker_cache = LayerCache(DEFAULTS.WORKER_CACHE_CAPACITY)


def run_pipeline(pipeline: str, options: GenerationOptions, config: dict = None,
                 logger: logging.Logger = None) -> GeneratedMapLayers:
    try:
        generate = PIPELINE_FUNCTIONS[pipeline]
    except KeyError:
        raise ValueError(f"Unknown generation pipeline: {pipeline!r}") from None
    return generate(options, config=config, logger=logger)


def run_generation_job(request: GenerationRequest, generator_config: dict = None) -> GenerationResponse:
    """
    Executes one generation request inside a worker process.
    Exceptions are logged here and re-raised so the caller can recover.
    """
    worker_logger = logging.getLogger(f"Worker-{os.getpid()}")
    cached = _worker_cache.get(request.cache_key)
    if cached is not None:
        worker_logger.debug(f"WORKER: Request {request.request_id} served from worker cache")
        return GenerationResponse(request_id=request.request_id, cache_key=request.cache_key,
                                  layers=cached, cache_hit=True)
    try:
        worker_logger.debug(f"WORKER: Starting request {request.request_id} ({request.pipeline})")
        layers = run_pipeline(request.pipeline, request.options, generator_config, worker_logger)
    except Exception as e:
        worker_logger.critical(f"WORKER: Request {request.request_id} failed: {e}", exc_info=True)
        raise
    _worker_cache.put(request.cache_key, layers)
    return GenerationResponse(request_id=request.request_id, cache_key=request.cache_key, layers=layers)


class GenerationWorker:
    """A handle on one background process that runs generation requests."""

    def __init__(self, generator_config: dict = None, logger: logging.Logger = None):
        self.logger = logger or logging.getLogger(__name__)
        self.generator_config = generator_config or {}
        # We only need one worker process; requests queue behind each other.
        self._pool = multiprocessing.Pool(processes=1)
        self._pending = []
        self.logger.info("Generation worker started.")

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def post(self, request: GenerationRequest) -> None:
        result = self._pool.apply_async(run_generation_job, (request, self.generator_config))
        self._pending.append((request, result))

    def collect(self) -> list:
        """
        Returns finished jobs as (request, response, error) tuples, in the
        order they were posted. Exactly one of response / error is set.
        """
        finished = []
        still_pending = []
        for request, result in self._pending:
            if not result.ready():
                still_pending.append((request, result))
                continue
            try:
                finished.append((request, result.get(), None))
            except Exception as e:
                finished.append((request, None, e))
        self._pending = still_pending
        return finished

    def terminate(self) -> None:
        """Kills the worker process. Pending jobs are dropped without notice."""
        self._pending = []
        self._pool.terminate()
        self._pool.join()
        self.logger.info("Generation worker terminated.")
