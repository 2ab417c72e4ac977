"""가져온 상품 재동기화 유즈케이스"""
from dataclasses import dataclass, field
from decimal import InvalidOperation
from enum import Enum
from typing import Dict, List, Optional, Tuple
import uuid

from market_import.core.entities.connection import Connection
from market_import.core.entities.import_execution import ExecutionType, ImportExecution
from market_import.core.entities.product import NormalizedProduct, SyncState
from market_import.core.exceptions import MarketplaceFetchError, ValidationError
from market_import.core.ports.clock_port import ClockPort
from market_import.core.ports.marketplace_port import MarketplaceAdapter, MarketplaceRegistry
from market_import.core.ports.repo_port import RepositoryPort
from market_import.core.usecases.import_products import ImportLocks, load_usable_connection
from market_import.shared.logging import get_logger, log_product_sync
from market_import.shared.result import Failure, Result, Success

logger = get_logger(__name__)


class SyncType(Enum):
    """동기화 범위"""
    ALL = "all"
    PRICES = "prices"
    INVENTORY = "inventory"
    DETAILS = "details"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SyncType":
        try:
            return cls((value or cls.ALL.value).strip().lower())
        except ValueError:
            raise ValidationError(
                f"알 수 없는 syncType: {value} (all|prices|inventory|details)",
                field="syncType"
            )

    @property
    def execution_type(self) -> ExecutionType:
        return ExecutionType(f"sync_{self.value}")

    @property
    def scopes(self) -> Tuple["SyncType", ...]:
        if self == SyncType.ALL:
            return (SyncType.PRICES, SyncType.INVENTORY, SyncType.DETAILS)
        return (self,)


# 범위별 갱신 필드 (가격은 저장된 마크업으로 판매가 재계산)
SYNC_FIELDS: Dict[SyncType, Tuple[str, ...]] = {
    SyncType.PRICES: ("original_price",),
    SyncType.INVENTORY: ("available_quantity", "sold_quantity"),
    SyncType.DETAILS: ("title", "condition", "images"),
}


def apply_changes(product: NormalizedProduct, fresh: NormalizedProduct, sync_type: SyncType) -> List[str]:
    """범위 내 필드 중 달라진 것만 반영, 바뀐 필드 이름 반환"""
    changed: List[str] = []
    for scope in sync_type.scopes:
        for name in SYNC_FIELDS[scope]:
            value = getattr(fresh, name)
            if getattr(product, name) != value:
                setattr(product, name, value)
                changed.append(name)

    if SyncType.PRICES in sync_type.scopes:
        price = product.markup.apply(product.original_price, product.currency)
        if price != product.price:
            product.price = price
            changed.append("price")
    return changed


@dataclass
class SyncPolicy:
    """호출 간격과 1회 처리 상한"""
    request_delay_seconds: float = 0.1
    max_products: int = 150


@dataclass
class SyncReport:
    """동기화 결과"""
    execution: ImportExecution
    sync_type: SyncType
    updated: List[NormalizedProduct] = field(default_factory=list)

    @property
    def updated_count(self) -> int:
        return self.execution.counters.updated


class SyncProductsUseCase:
    """연결 검증 → 자동 동기화 대상 조회 → 상세 재조회 → 변경분 저장 → 실행 이력 기록"""

    def __init__(
        self,
        registry: MarketplaceRegistry,
        repository: RepositoryPort,
        clock: ClockPort,
        policy: Optional[SyncPolicy] = None,
        locks: Optional[ImportLocks] = None
    ):
        self.registry = registry
        self.repository = repository
        self.clock = clock
        self.policy = policy or SyncPolicy()
        self.locks = locks or ImportLocks()

    async def execute(self, connection_id: str, sync_type: Optional[str] = None) -> SyncReport:
        kind = SyncType.parse(sync_type)
        connection = await load_usable_connection(self.repository, self.clock, connection_id)
        adapter = self.registry.get(connection.marketplace)

        async with self.locks.hold(connection.id):
            return await self._run(adapter, connection, kind)

    async def _run(self, adapter: MarketplaceAdapter, connection: Connection, sync_type: SyncType) -> SyncReport:
        execution = ImportExecution(
            id=str(uuid.uuid4()),
            connection_id=connection.id,
            execution_type=sync_type.execution_type,
            started_at=self.clock.now(),
            summary={"sync_type": sync_type.value}
        )
        report = SyncReport(execution=execution, sync_type=sync_type)
        counters = execution.counters
        error_message: Optional[str] = None

        try:
            products = await self.repository.list_sync_candidates(connection.id, limit=self.policy.max_products)
            counters.found = len(products)
            logger.info(
                f"상품 동기화 시작: connection={connection.id} type={sync_type.value} 대상={len(products)}"
            )

            for index, product in enumerate(products):
                if index > 0 and self.policy.request_delay_seconds > 0:
                    await self.clock.sleep(self.policy.request_delay_seconds)

                result = await self._sync_one(adapter, connection, product, sync_type)
                if result.is_failure():
                    counters.add_skip(product.marketplace_product_id, result.get_error())
                    continue

                counters.processed += 1
                if result.get_value():
                    counters.updated += 1
                    report.updated.append(product)
                    log_product_sync(logger, "updated", product.marketplace_product_id, {
                        "connection_id": connection.id,
                        "fields": result.get_value()
                    })
        except Exception as e:
            logger.error(f"상품 동기화 중단: connection={connection.id} - {e!r}", exc_info=True)
            error_message = f"중단: {e!r}"
            raise
        finally:
            execution.complete(self.clock.now(), error_message=error_message)
            await self.repository.add_execution(execution)

        logger.info(
            f"상품 동기화 완료: connection={connection.id} status={execution.status.value} "
            f"processed={counters.processed} updated={counters.updated}"
        )
        return report

    async def _sync_one(
        self,
        adapter: MarketplaceAdapter,
        connection: Connection,
        product: NormalizedProduct,
        sync_type: SyncType
    ) -> "Result[List[str]]":
        product_id = product.marketplace_product_id
        try:
            raw = await adapter.fetch_by_id(product_id, connection.access_token)
        except MarketplaceFetchError as e:
            logger.warning(f"상품 재조회 실패, 건너뜀 {product_id}: {e.message}")
            return Failure(e.message, stage="fetch")

        now = self.clock.now()
        try:
            fresh = adapter.normalize(raw, connection, product.markup, now)
        except (KeyError, TypeError, ValueError, InvalidOperation) as e:
            logger.warning(f"상품 정규화 실패, 건너뜀 {product_id}: {e!r}")
            return Failure(f"normalize: {e!r}", stage="normalize")

        changed = apply_changes(product, fresh, sync_type)
        product.last_sync_at = now
        product.sync_status = SyncState.COMPLETED
        try:
            await self.repository.upsert_product(product)
        except Exception as e:
            logger.error(f"상품 저장 실패 {product_id}: {e}", exc_info=True)
            return Failure(f"upsert: {e}", stage="upsert")
        return Success(changed)
