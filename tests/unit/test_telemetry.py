from unittest.mock import Mock

import pytest

from src.shared.telemetry import (
    METHOD_DURATION,
    SELECTION_OUTCOMES,
    Telemetry,
    measure_time,
)


class Worker:
    def __init__(self):
        self.telemetry = Telemetry("Worker")
        self.telemetry.logger = Mock()

    @measure_time("work")
    def work(self, value):
        return value * 2

    @measure_time("explode")
    def explode(self):
        raise ValueError("boom")


def _sample(metric, suffix, **labels):
    for family in metric.collect():
        for sample in family.samples:
            if sample.name.endswith(suffix) and sample.labels == labels:
                return sample.value
    return 0.0


def test_measure_time_records_duration_and_logs():
    worker = Worker()
    before = _sample(METHOD_DURATION, "_count", component="Worker", method="work")

    assert worker.work(21) == 42

    after = _sample(METHOD_DURATION, "_count", component="Worker", method="work")
    assert after == before + 1
    worker.telemetry.logger.info.assert_called_once()


def test_measure_time_logs_and_reraises():
    worker = Worker()

    with pytest.raises(ValueError):
        worker.explode()

    worker.telemetry.logger.error.assert_called_once()


def test_log_lines_carry_trace_id():
    telemetry = Telemetry("TraceTest")
    telemetry.logger = Mock()

    trace_id = Telemetry.start_trace()
    telemetry.log_info("Hello", user_id="u1")

    message = telemetry.logger.info.call_args[0][0]
    assert message.startswith(f"[{trace_id}] Hello")
    assert "u1" in message


def test_count_selection_increments_counter():
    before = _sample(SELECTION_OUTCOMES, "_total", mode="unit", outcome="served")
    Telemetry.count_selection("unit", "served")
    after = _sample(SELECTION_OUTCOMES, "_total", mode="unit", outcome="served")
    assert after == before + 1
