"""Batch processing of decoded telemetry containers.

Each item is independent: a malformed container is recorded as an error and
the batch carries on with the next one.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Iterable

from pydantic import ValidationError

from athlete_core.config import training_config
from athlete_core.logging_config import log_context
from athlete_core.models import ActivityMetrics, LapMetrics, TrainingConfig
from athlete_core.services.telemetry import TelemetryValidationError, analyze_decoded_activity
from athlete_core.validators import DecodedActivity

logger = logging.getLogger(__name__)


@dataclass
class ProcessingResult:
    """Summary of a batch run."""

    activities_processed: int = 0
    activities_skipped: int = 0
    activities: list[ActivityMetrics] = field(default_factory=list)
    laps: list[LapMetrics] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    processing_time_ms: float = 0.0


def _item_name(item: Any, index: int) -> str:
    if isinstance(item, DecodedActivity):
        name = item.file_name
    elif isinstance(item, dict):
        name = item.get("file_name")
    else:
        name = None
    return name if isinstance(name, str) and name else f"item {index + 1}"


def _validation_message(exc: ValidationError) -> str:
    first = exc.errors()[0]
    loc = ".".join(str(p) for p in first.get("loc", ()))
    return f"{loc}: {first.get('msg')}" if loc else first.get("msg", str(exc))


def process_batch(
    items: Iterable[DecodedActivity | dict[str, Any]],
    config: TrainingConfig | None = None,
) -> ProcessingResult:
    """Analyze every decoded container, collecting metrics and per-item errors.

    Containers yielding an activity id already seen in this batch are skipped
    as duplicates.
    """
    config = config or training_config()
    started = time.perf_counter()
    result = ProcessingResult()
    seen_ids: set[str] = set()

    for index, item in enumerate(items):
        name = _item_name(item, index)
        try:
            metrics, laps = analyze_decoded_activity(item, config=config, file_name=name)
            if metrics.duration <= 0:
                raise TelemetryValidationError("activity has no positive duration")
        except ValidationError as e:
            message = f"Error processing {name}: {_validation_message(e)}"
        except TelemetryValidationError as e:
            message = f"Error processing {name}: {e}"
        else:
            if metrics.activity_id in seen_ids:
                logger.info("Skipping duplicate activity %s from %s", metrics.activity_id, name)
                result.activities_skipped += 1
                continue
            seen_ids.add(metrics.activity_id)
            result.activities.append(metrics)
            result.laps.extend(laps)
            result.activities_processed += 1
            continue

        logger.warning("%s", message, extra=log_context(file=name))
        result.errors.append(message)
        result.activities_skipped += 1

    result.processing_time_ms = round((time.perf_counter() - started) * 1000, 1)
    logger.info(
        "Processed batch: %d imported, %d skipped, %d errors",
        result.activities_processed, result.activities_skipped, len(result.errors),
    )
    return result
