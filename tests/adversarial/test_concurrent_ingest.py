"""Adversarial tests — concurrent producers and readers.

These tests verify that:
1. Racing ingests of the same id admit exactly one record
2. Concurrent ingests into different environments all land
3. Readers never observe an invalid or non-newest latest image
4. Racing deregistrations of one image succeed exactly once
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from goldenami.core.selector import ImageSelector
from goldenami.errors import DuplicateImageError, ImageNotFoundError, InvalidTransitionError
from goldenami.models.images import ImageState

WORKERS = 8


def _run_all(fn, args):
    """Run ``fn`` for every arg from a common start barrier; return results or exceptions."""
    barrier = threading.Barrier(len(args))

    def _call(arg):
        barrier.wait()
        try:
            return fn(arg)
        except Exception as exc:  # collected for assertions
            return exc

    with ThreadPoolExecutor(max_workers=len(args)) as pool:
        return list(pool.map(_call, args))


class TestDuplicateRaces:
    @pytest.mark.parametrize("persistent", [False, True])
    def test_same_id_admitted_once(self, store, make_record, persistent):
        selector = ImageSelector(store) if persistent else ImageSelector()
        results = _run_all(
            lambda i: selector.ingest(make_record("ami-race", minutes=i)), list(range(WORKERS))
        )

        admitted = [r for r in results if not isinstance(r, Exception)]
        rejected = [r for r in results if isinstance(r, DuplicateImageError)]
        assert len(admitted) == 1
        assert len(rejected) == WORKERS - 1
        assert len(selector.history("production")) == 1
        if persistent:
            assert len(store.load_all()) == 1

    def test_same_id_across_environments(self, make_record):
        selector = ImageSelector()
        envs = [f"env-{i}" for i in range(WORKERS)]
        results = _run_all(
            lambda env: selector.ingest(make_record("ami-race", environment=env)), envs
        )
        assert sum(not isinstance(r, Exception) for r in results) == 1
        assert sum(len(selector.history(env)) for env in envs) == 1


class TestIndependentEnvironments:
    def test_all_environments_receive_their_records(self, store, make_record):
        selector = ImageSelector(store)
        envs = [f"env-{i}" for i in range(WORKERS)]

        def _produce(env):
            for n in range(5):
                selector.ingest(make_record(f"ami-{env}-{n}", environment=env, minutes=n))
            return env

        results = _run_all(_produce, envs)
        assert results == envs
        for env in envs:
            assert len(selector.history(env)) == 5
            assert selector.get_latest_valid(env).id == f"ami-{env}-4"
        assert len(store.load_all()) == WORKERS * 5


class TestReadersDuringWrites:
    def test_latest_always_valid_and_monotonic(self, make_record):
        selector = ImageSelector()
        stop = threading.Event()
        seen: list[str] = []
        problems: list[str] = []

        def _reader():
            last = None
            while not stop.is_set():
                try:
                    record = selector.get_latest_valid("production")
                except ImageNotFoundError:
                    continue
                if not record.is_valid:
                    problems.append(f"invalid {record.id}")
                if last is not None and record.sort_key() < last.sort_key():
                    problems.append(f"went back from {last.id} to {record.id}")
                last = record
                seen.append(record.id)

        readers = [threading.Thread(target=_reader) for _ in range(4)]
        for t in readers:
            t.start()
        try:
            for n in range(50):
                selector.ingest(make_record(f"ami-{n:03d}", minutes=n))
                # invalid records interleaved must never surface
                selector.ingest(
                    make_record(f"ami-{n:03d}-p", minutes=n, state=ImageState.PENDING)
                )
        finally:
            stop.set()
            for t in readers:
                t.join()

        assert problems == []
        assert all(not image_id.endswith("-p") for image_id in seen)
        assert selector.get_latest_valid("production").id == "ami-049"


class TestTransitionRaces:
    def test_deregister_once(self, store, make_record):
        selector = ImageSelector(store)
        selector.ingest(make_record("ami-1"))

        results = _run_all(lambda _: selector.deregister("ami-1"), list(range(WORKERS)))

        succeeded = [r for r in results if not isinstance(r, Exception)]
        refused = [r for r in results if isinstance(r, InvalidTransitionError)]
        assert len(succeeded) == 1
        assert len(refused) == WORKERS - 1
        events = store.get_events("ami-1")
        assert [e.event for e in events] == ["ingest", "transition"]
