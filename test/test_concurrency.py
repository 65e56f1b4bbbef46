import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from multiverse_runtime.core.manager import WorkerManager
from multiverse_runtime.drivers import DRIVER_REGISTRY, DriverDescriptor, PythonDriver


class CountingFactory:
    """Driver factory that records how often it runs, slowly enough to expose races."""

    def __init__(self, driver_class):
        self.driver_class = driver_class
        self.calls = 0
        self._lock = threading.Lock()

    def __call__(self, settings, executor, filesystem):
        with self._lock:
            self.calls += 1
        time.sleep(0.05)
        return self.driver_class(settings, executor, filesystem)


@pytest.mark.unit
def test_concurrent_first_use_constructs_once(settings):
    factory = CountingFactory(PythonDriver)
    manager = WorkerManager(settings=settings, drivers={"python": DriverDescriptor("python", factory)})
    barrier = threading.Barrier(16)

    def get_driver(_):
        barrier.wait()
        return manager.driver("python")

    with ThreadPoolExecutor(max_workers=16) as pool:
        drivers = list(pool.map(get_driver, range(16)))

    assert factory.calls == 1
    assert all(driver is drivers[0] for driver in drivers)


@pytest.mark.integration
def test_concurrent_runs_do_not_interfere(settings, echo_worker):
    factory = CountingFactory(PythonDriver)
    registry = dict(DRIVER_REGISTRY, python=DriverDescriptor("python", factory))
    manager = WorkerManager(settings=settings, drivers=registry)

    def run(index):
        return index, manager.run("echo", {"index": index, "text": "x" * index})

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(run, range(24)))

    assert factory.calls == 1
    for index, result in results:
        assert result.data == {"index": index, "text": "x" * index}
