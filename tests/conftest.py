from __future__ import annotations

import json
from concurrent.futures import Executor, Future
from typing import Any, Callable, List, Tuple

import pytest

from lasso_search.features.store import FeatureStore
from lasso_search.geometry.shapes import Coordinate, Polygon


class ManualHandle:
    def __init__(self, due: float, callback: Callable[[], None]):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose clock only moves when the test advances it."""

    def __init__(self):
        self.now = 0.0
        self.handles: List[ManualHandle] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle(self.now + delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self) -> List[ManualHandle]:
        return [h for h in self.handles if not h.cancelled]

    def advance(self, seconds: float) -> None:
        self.now += seconds
        while True:
            due = sorted(
                (h for h in self.pending if h.due <= self.now), key=lambda h: h.due
            )
            if not due:
                return
            handle = due[0]
            self.handles.remove(handle)
            handle.callback()


class InlineExecutor(Executor):
    """Runs submissions immediately; futures are already done when returned."""

    def submit(self, fn, *args, **kwargs) -> Future:
        future: Future = Future()
        future.set_running_or_notify_cancel()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


class ManualExecutor(Executor):
    """Holds submissions until the test runs them."""

    def __init__(self):
        self.queued: List[Tuple[Future, Callable[..., Any], tuple]] = []

    def submit(self, fn, *args, **kwargs) -> Future:
        future: Future = Future()
        self.queued.append((future, fn, args))
        return future

    def run_all(self) -> None:
        queued, self.queued = self.queued, []
        for future, fn, args in queued:
            if not future.set_running_or_notify_cancel():
                continue
            try:
                future.set_result(fn(*args))
            except Exception as e:
                future.set_exception(e)


def point_feature(feature_id, lon, lat, price=100000):
    return {
        "type": "Feature",
        "id": feature_id,
        "geometry": {"type": "Point", "coordinates": [lon, lat]},
        "properties": {"price": price},
    }


def collection(*features) -> str:
    return json.dumps({"type": "FeatureCollection", "features": list(features)})


def square(size: float = 10.0) -> Polygon:
    return Polygon.from_lon_lat([[0, 0], [0, size], [size, size], [size, 0]])


def lon_lat(lon: float, lat: float) -> Coordinate:
    return Coordinate(latitude=lat, longitude=lon)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def square_store() -> FeatureStore:
    return FeatureStore.load(collection(
        point_feature("inside", 5, 5, 350000),
        point_feature("outside", 15, 5, 200000),
        point_feature("edge", 0, 5, 275000.0),
        point_feature("corner", 10, 10, "499,000"),
    ))


@pytest.fixture
def listings_file(tmp_path):
    path = tmp_path / "listings.geojson"
    path.write_text(collection(
        point_feature("1", 5, 5, 350000),
        point_feature("2", 15, 5, 200000),
        point_feature("3", 2, 8, 410000),
    ), encoding="utf-8")
    return path
