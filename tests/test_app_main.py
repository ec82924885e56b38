from __future__ import annotations

import threading
import time

from subsirl.app.main import _stop_worker


def test_stop_worker_joins_cooperative_worker() -> None:
    stop_event = threading.Event()
    worker = threading.Thread(target=stop_event.wait, daemon=True)
    worker.start()

    assert _stop_worker(worker, stop_event, timeout=2.0)
    assert stop_event.is_set()


def test_stop_worker_returns_quickly_for_slow_worker() -> None:
    stop_event = threading.Event()
    release = threading.Event()
    worker = threading.Thread(target=release.wait, daemon=True)
    worker.start()

    started = time.perf_counter()
    exited = _stop_worker(worker, stop_event, timeout=0.05)
    elapsed = time.perf_counter() - started
    release.set()

    assert not exited
    assert elapsed < 1.0
