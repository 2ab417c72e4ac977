"""가져오기/동기화 실행 이력 도메인 엔티티"""
from dataclasses import dataclass, field
from typing import Dict, Any, Optional
from datetime import datetime
from enum import Enum


class ExecutionType(Enum):
    """실행 타입"""
    SEARCH_IMPORT = "search_import"        # 검색어로 수집
    SELECTIVE_IMPORT = "selective_import"  # 지정 상품 ID 수집
    SYNC_ALL = "sync_all"                  # 기존 상품 전체 재동기화
    SYNC_PRICES = "sync_prices"
    SYNC_INVENTORY = "sync_inventory"
    SYNC_DETAILS = "sync_details"


class ExecutionStatus(Enum):
    """실행 상태"""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ImportCounters:
    """실행 집계"""
    found: int = 0
    processed: int = 0
    imported: int = 0
    updated: int = 0
    skipped: Dict[str, str] = field(default_factory=dict)

    def add_skip(self, product_id: str, reason: str) -> None:
        """건너뛴 상품 기록"""
        self.skipped[product_id] = reason


@dataclass
class ImportExecution:
    """가져오기 또는 동기화 1회 실행 기록 (완료 후 불변)"""
    id: str
    connection_id: str
    execution_type: ExecutionType
    status: ExecutionStatus = ExecutionStatus.RUNNING
    counters: ImportCounters = field(default_factory=ImportCounters)
    summary: Dict[str, Any] = field(default_factory=dict)
    error_message: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_finished(self) -> bool:
        return self.status != ExecutionStatus.RUNNING

    def complete(self, now: datetime, error_message: Optional[str] = None) -> None:
        """실행 종료: 후보가 있었는데 한 건도 처리하지 못했거나 검색 실패면 failed"""
        if self.is_finished:
            raise RuntimeError(f"이미 종료된 실행입니다: {self.id}")

        nothing_done = self.counters.found > 0 and self.counters.processed == 0
        if error_message or nothing_done:
            self.status = ExecutionStatus.FAILED
        else:
            self.status = ExecutionStatus.COMPLETED
        self.error_message = error_message
        self.completed_at = now
        if self.counters.skipped:
            self.summary["skipped"] = dict(self.counters.skipped)

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> Dict[str, Any]:
        """딕셔너리 변환 (직렬화용)"""
        return {
            'id': self.id,
            'api_connection_id': self.connection_id,
            'execution_type': self.execution_type.value,
            'status': self.status.value,
            'products_found': self.counters.found,
            'products_processed': self.counters.processed,
            'products_imported': self.counters.imported,
            'products_updated': self.counters.updated,
            'summary': self.summary,
            'error_message': self.error_message,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'duration_seconds': self.duration_seconds
        }
