"""Tests for the preview coordinator, driven through a fake worker."""

import pytest

from map_generator import GenerationOptions, generate_map_layers, generate_simulation_layers
from map_generator.options import PIPELINE_SIMULATION, cache_key
from map_generator.preview import coordinator as coordinator_module
from map_generator.preview.coordinator import PreviewCoordinator

from .conftest import FakeWorker


def options_for(seed):
    return GenerationOptions.normalize(seed=seed, width=256, height=256, sea_level=0.45)


@pytest.fixture
def coordinator(fake_worker_factory):
    coordinator = PreviewCoordinator(worker_factory=fake_worker_factory)
    yield coordinator
    coordinator.close()


class TestAsyncRequests:

    def test_request_is_dispatched_to_worker(self, coordinator):
        assert coordinator.request(options_for("a")) is None
        assert coordinator.is_generating
        assert len(coordinator.worker.posted) == 1
        assert coordinator.worker.posted[0].request_id == coordinator.active_request_id

    def test_response_is_delivered_and_cached(self, coordinator):
        options = options_for("a")
        coordinator.request(options)
        coordinator.worker.complete(coordinator.worker.posted[0])

        assert coordinator.poll()
        assert not coordinator.is_generating
        assert coordinator.layers.equals(generate_map_layers(options))
        assert cache_key(options) in coordinator.cache

    def test_poll_without_results(self, coordinator):
        coordinator.request(options_for("a"))
        assert not coordinator.poll()
        assert coordinator.layers is None

    def test_accepts_raw_form_values(self, coordinator):
        coordinator.request({'seed': "  a ", 'width': "256", 'height': 256, 'sea_level': 0.45})
        assert coordinator.worker.posted[0].options == options_for("a")

    def test_directly_built_options_are_normalized(self):
        with PreviewCoordinator(use_worker=False) as coordinator:
            first = coordinator.request(GenerationOptions(seed="  a ", width=256, height=256,
                                                          sea_level=0.45, climate_preset="tropical"))
            second = coordinator.request(GenerationOptions(seed="a", width=256, height=256,
                                                           sea_level=0.45, climate_preset="temperate"))
            assert second is first
            assert len(coordinator.cache) == 1

            coordinator.request(GenerationOptions(seed="a", width=256, height=256, sea_level=7.5))
            assert coordinator.latest_options.sea_level == 1.0


class TestStaleResponses:

    def test_older_response_arriving_first_is_discarded(self, coordinator):
        worker = coordinator.worker
        coordinator.request(options_for("a"))
        coordinator.request(options_for("b"))
        first, second = worker.posted

        worker.complete(first)
        assert not coordinator.poll()
        assert coordinator.layers is None
        assert coordinator.is_generating

        worker.complete(second)
        assert coordinator.poll()
        assert coordinator.layers.equals(generate_map_layers(options_for("b")))

    def test_older_response_arriving_last_is_discarded(self, coordinator):
        worker = coordinator.worker
        coordinator.request(options_for("a"))
        coordinator.request(options_for("b"))
        first, second = worker.posted

        worker.complete(second)
        worker.complete(first)
        assert coordinator.poll()
        assert coordinator.layers.equals(generate_map_layers(options_for("b")))
        assert cache_key(options_for("a")) not in coordinator.cache

    def test_cache_hit_supersedes_outstanding_request(self, coordinator):
        worker = coordinator.worker
        coordinator.request(options_for("a"))
        worker.complete(worker.posted[0])
        coordinator.poll()
        cached = coordinator.layers

        coordinator.request(options_for("b"))
        assert coordinator.request(options_for("a")) is cached
        assert not coordinator.is_generating
        assert len(worker.posted) == 2

        worker.complete(worker.posted[1])
        assert not coordinator.poll()
        assert coordinator.layers is cached


class TestFailureRecovery:

    def test_synchronous_mode_matches_worker_result(self, fake_worker_factory):
        options = options_for("same")
        with PreviewCoordinator(use_worker=False) as sync:
            direct = sync.request(options)
        with PreviewCoordinator(worker_factory=fake_worker_factory) as async_:
            async_.request(options)
            async_.worker.complete(async_.worker.posted[0])
            async_.poll()
            assert async_.layers.equals(direct)
        assert sync.is_degraded

    def test_worker_creation_failure_falls_back(self):
        def broken_factory(config, logger):
            raise OSError("no processes available")

        with PreviewCoordinator(worker_factory=broken_factory) as coordinator:
            assert coordinator.is_degraded
            layers = coordinator.request(options_for("a"))
            assert layers is not None
            assert coordinator.layers is layers
            assert not coordinator.poll()

    def test_active_failure_regenerates_latest_options(self, coordinator):
        worker = coordinator.worker
        coordinator.request(options_for("a"))
        worker.fail(worker.posted[0])

        assert coordinator.poll()
        assert not coordinator.is_generating
        assert not coordinator.is_degraded
        assert coordinator.layers.equals(generate_map_layers(options_for("a")))

    def test_superseded_failure_is_ignored(self, coordinator):
        worker = coordinator.worker
        coordinator.request(options_for("a"))
        coordinator.request(options_for("b"))
        first, second = worker.posted

        worker.fail(first)
        assert not coordinator.poll()
        assert coordinator.layers is None
        assert coordinator.is_generating

        worker.complete(second)
        assert coordinator.poll()
        assert coordinator.layers.equals(generate_map_layers(options_for("b")))

    def test_post_failure_switches_to_synchronous_mode(self):
        class UnreachableWorker(FakeWorker):
            def post(self, request):
                raise BrokenPipeError("worker gone")

        coordinator = PreviewCoordinator(worker_factory=UnreachableWorker)
        worker = coordinator.worker
        layers = coordinator.request(options_for("a"))

        assert layers is not None
        assert coordinator.is_degraded
        assert worker.terminated
        coordinator.close()


class TestLifecycle:

    def test_close_terminates_worker_and_clears_cache(self, fake_worker_factory):
        coordinator = PreviewCoordinator(worker_factory=fake_worker_factory)
        worker = coordinator.worker
        coordinator.request(options_for("a"))
        worker.complete(worker.posted[0])
        coordinator.poll()

        coordinator.close()
        assert worker.terminated
        assert len(coordinator.cache) == 0
        assert not coordinator.is_generating

    def test_on_layers_is_called_for_every_delivery(self):
        delivered = []
        with PreviewCoordinator(use_worker=False, on_layers=delivered.append) as coordinator:
            coordinator.request(options_for("a"))
            coordinator.request(options_for("a"))
        assert len(delivered) == 2
        assert delivered[0] is delivered[1]

    def test_unknown_pipeline_is_rejected(self):
        with pytest.raises(ValueError):
            PreviewCoordinator(pipeline="fancy", use_worker=False)

    def test_simulation_pipeline(self):
        options = options_for("sim")
        with PreviewCoordinator(pipeline=PIPELINE_SIMULATION, use_worker=False) as coordinator:
            layers = coordinator.request(options)
            assert coordinator.cache.keys() == [cache_key(options, PIPELINE_SIMULATION)]
        assert layers.equals(generate_simulation_layers(options))

    def test_cache_evicts_least_recently_used(self, monkeypatch, small_layers):
        calls = []

        def fake_pipeline(pipeline, options, config=None, logger=None):
            calls.append(options.seed)
            return small_layers

        monkeypatch.setattr(coordinator_module, "run_pipeline", fake_pipeline)
        with PreviewCoordinator(use_worker=False, cache_capacity=20) as coordinator:
            for i in range(21):
                coordinator.request(options_for(f"seed-{i}"))
            assert len(coordinator.cache) == 20

            coordinator.request(options_for("seed-20"))
            assert len(calls) == 21

            coordinator.request(options_for("seed-0"))
            assert calls[-1] == "seed-0"
            assert len(calls) == 22
