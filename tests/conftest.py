"""Shared fixtures for the map generator tests."""

import pytest

from map_generator import GenerationOptions, generate_map_layers
from map_generator.preview.messages import GenerationResponse


@pytest.fixture
def small_options():
    """A small canvas that maps to the minimum 48x32 grid."""
    return GenerationOptions.normalize(seed="test-seed", width=256, height=256, sea_level=0.45)


@pytest.fixture
def small_layers(small_options):
    return generate_map_layers(small_options)


class FakeWorker:
    """
    Stands in for GenerationWorker. Posted requests are only answered when a
    test calls complete() or fail(), in whatever order the test chooses.
    """

    def __init__(self, config=None, logger=None):
        self.config = config
        self.posted = []
        self.finished = []
        self.terminated = False

    def post(self, request):
        self.posted.append(request)

    def collect(self):
        done, self.finished = self.finished, []
        return done

    def terminate(self):
        self.terminated = True

    def complete(self, request, layers=None):
        if layers is None:
            layers = generate_map_layers(request.options)
        response = GenerationResponse(request_id=request.request_id, cache_key=request.cache_key, layers=layers)
        self.finished.append((request, response, None))

    def fail(self, request, error=None):
        self.finished.append((request, None, error or RuntimeError("worker crashed")))


@pytest.fixture
def fake_worker_factory():
    return FakeWorker
