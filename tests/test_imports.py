"""Tests for batch processing of decoded telemetry."""

from __future__ import annotations

import logging
from datetime import datetime

from athlete_core.models import HRZoneConfig, TrainingConfig
from athlete_core.services.imports import process_batch
from athlete_core.validators import DecodedActivity

CONFIG = TrainingConfig(hr=HRZoneConfig(resting_hr=60, max_hr=190))


def _decoded(name: str, start: str = "2024-03-10T07:30:00", elapsed: float = 1800, **session):
    return {
        "file_name": name,
        "sessions": [{"start_time": start, "sport": "running", "total_elapsed_time": elapsed, **session}],
        "records": [{"heart_rate": 145} for _ in range(12)],
    }


def test_process_batch_all_valid():
    result = process_batch(
        [_decoded("a.fit"), _decoded("b.fit", start="2024-03-11T07:30:00", total_distance=6.0)],
        config=CONFIG,
    )
    assert result.activities_processed == 2
    assert result.activities_skipped == 0
    assert result.errors == []
    assert result.activities[1].distance == 6.0
    assert result.processing_time_ms >= 0


def test_process_batch_continues_after_bad_item():
    items = [
        _decoded("good.fit"),
        {"file_name": "broken.fit", "sessions": [{"start_time": "yesterday-ish"}]},
        {"file_name": "nosession.fit"},
        _decoded("zero.fit", start="2024-03-12T07:30:00", elapsed=0),
        _decoded("late.fit", start="2024-03-13T07:30:00"),
    ]
    result = process_batch(items, config=CONFIG)
    assert result.activities_processed == 2
    assert result.activities_skipped == 3
    assert len(result.errors) == 3
    assert result.errors[0].startswith("Error processing broken.fit:")
    assert result.errors[1].startswith("Error processing nosession.fit:")
    assert result.errors[2].startswith("Error processing zero.fit:")


def test_process_batch_skips_duplicates():
    result = process_batch([_decoded("a.fit"), _decoded("a.fit")], config=CONFIG)
    assert result.activities_processed == 1
    assert result.activities_skipped == 1
    assert result.errors == []


def test_process_batch_accepts_validated_containers():
    decoded = DecodedActivity.model_validate(_decoded("model.fit"))
    result = process_batch([decoded], config=CONFIG)
    assert result.activities[0].file_name == "model.fit"


def test_process_batch_unnamed_items():
    item = _decoded("x")
    del item["file_name"]
    item["sessions"][0]["start_time"] = None
    result = process_batch([item], config=CONFIG)
    assert result.errors == ["Error processing item 1: session has no start time"]


def test_process_batch_empty():
    result = process_batch([], config=CONFIG)
    assert result.activities_processed == 0
    assert result.activities == []
    assert result.laps == []


def test_process_batch_logs_failures_with_file_context(caplog):
    with caplog.at_level(logging.WARNING, logger="athlete_core.services.imports"):
        process_batch([{"file_name": "broken.fit", "records": []}], config=CONFIG)
    record = caplog.records[-1]
    assert record.ctx_file == "broken.fit"
    assert "Error processing broken.fit" in record.getMessage()


def test_process_batch_reports_non_container_items():
    result = process_batch([None, ["not", "a", "container"], _decoded("ok.fit")], config=CONFIG)
    assert result.activities_processed == 1
    assert result.activities_skipped == 2
    assert result.errors[0].startswith("Error processing item 1: ")
    assert result.errors[1].startswith("Error processing item 2: ")
    assert result.activities[0].file_name == "ok.fit"
