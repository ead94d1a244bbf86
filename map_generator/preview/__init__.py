# map_generator/preview/__init__.py

# This file makes the 'preview' directory a Python package.
# It also defines the public API of the package.

from .cache import LayerCache
from .coordinator import PreviewCoordinator
from .messages import GenerationRequest, GenerationResponse
from .worker import GenerationWorker, run_generation_job, run_pipeline

__all__ = [
    "LayerCache",
    "PreviewCoordinator",
    "GenerationRequest",
    "GenerationResponse",
    "GenerationWorker",
    "run_generation_job",
    "run_pipeline",
]
