from __future__ import annotations

import threading
from pathlib import Path

import pytest

from image_optimizer.models.image_model import OptimizationOutcome
from image_optimizer.services.progress_aggregator import ProgressAggregator


def test_totals_by_status():
    agg = ProgressAggregator()
    agg.record(OptimizationOutcome.optimized(Path("a.jpg"), 1000, 600))
    agg.record(OptimizationOutcome.skipped(Path("b.png"), 500))
    agg.record(OptimizationOutcome.failed(Path("c.webp"), 300, "boom"))

    summary = agg.summary()

    assert summary.total_files == 3
    assert (summary.optimized, summary.skipped, summary.failed) == (1, 1, 1)
    assert summary.total_original_bytes == 1800
    # skipped and failed files keep their original size
    assert summary.total_optimized_bytes == 1400
    assert summary.saved_bytes == 400
    assert summary.failures[0].path == Path("c.webp")
    assert summary.failures[0].detail == "boom"
    assert summary.has_failures


def test_duplicate_path_is_rejected():
    agg = ProgressAggregator()
    agg.record(OptimizationOutcome.skipped(Path("a.png"), 10))
    with pytest.raises(ValueError):
        agg.record(OptimizationOutcome.skipped(Path("a.png"), 10))


def test_listener_sees_every_outcome():
    seen = []
    agg = ProgressAggregator(listener=seen.append)
    outcome = OptimizationOutcome.optimized(Path("a.jpg"), 10, 5)
    agg.record(outcome)
    assert seen == [outcome]


def test_concurrent_records_are_not_lost():
    agg = ProgressAggregator()
    threads_n, per_thread = 8, 200

    def worker(tid: int) -> None:
        for i in range(per_thread):
            agg.record(OptimizationOutcome.optimized(Path(f"t{tid}/{i}.jpg"), 100, 60))

    threads = [threading.Thread(target=worker, args=(t,)) for t in range(threads_n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    summary = agg.summary()
    total = threads_n * per_thread
    assert agg.processed == total
    assert summary.optimized == total
    assert summary.total_original_bytes == 100 * total
    assert summary.total_optimized_bytes == 60 * total


def test_summary_carries_warnings_and_cancel_flag():
    summary = ProgressAggregator().summary(cancelled=True, scan_warnings=["x: denied"])
    assert summary.cancelled
    assert summary.scan_warnings == ("x: denied",)
    assert summary.total_files == 0
    assert summary.percent_saved == 0.0
