"""가져오기 실행 엔티티 단위 테스트"""
from datetime import datetime, timezone

import pytest

from market_import.core.entities.import_execution import ExecutionStatus, ExecutionType, ImportExecution

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _execution() -> ImportExecution:
    return ImportExecution(id="exec-1", connection_id="conn-1",
                           execution_type=ExecutionType.SEARCH_IMPORT, started_at=NOW)


def test_empty_search_completes():
    execution = _execution()

    execution.complete(NOW)

    assert execution.status == ExecutionStatus.COMPLETED


def test_nothing_processed_fails():
    execution = _execution()
    execution.counters.found = 3
    execution.counters.add_skip("MLB1", "404")

    execution.complete(NOW)

    assert execution.status == ExecutionStatus.FAILED
    assert execution.summary["skipped"] == {"MLB1": "404"}


def test_error_message_fails():
    execution = _execution()

    execution.complete(NOW, error_message="search failed")

    assert execution.status == ExecutionStatus.FAILED
    assert execution.to_dict()["products_processed"] == 0


def test_complete_twice_rejected():
    execution = _execution()
    execution.complete(NOW)

    with pytest.raises(RuntimeError):
        execution.complete(NOW)
