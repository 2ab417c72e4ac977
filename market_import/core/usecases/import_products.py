"""마켓 상품 가져오기 유즈케이스"""
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from decimal import InvalidOperation
from typing import Any, AsyncIterator, List, Optional, Set
import uuid

from market_import.core.entities.connection import Connection
from market_import.core.entities.import_execution import (
    ExecutionType, ImportExecution
)
from market_import.core.entities.product import MarkupPolicy, NormalizedProduct, SyncState
from market_import.core.exceptions import (
    ConnectionInactiveError, ConnectionNotFoundError, ImportInProgressError,
    ImportRequestError, MarketplaceFetchError, TokenExpiredError
)
from market_import.core.ports.clock_port import ClockPort
from market_import.core.ports.marketplace_port import MarketplaceAdapter, MarketplaceRegistry
from market_import.core.ports.repo_port import RepositoryPort
from market_import.shared.logging import get_logger, log_product_sync
from market_import.shared.result import Failure, Result, Success

logger = get_logger(__name__)


@dataclass
class ImportPolicy:
    """호출 간격과 상한"""
    request_delay_seconds: float = 0.1
    max_products: int = 20
    search_limit: int = 50
    default_markup: MarkupPolicy = field(default_factory=MarkupPolicy)


@dataclass
class ImportedProduct:
    """실행 결과에 포함되는 상품"""
    product: NormalizedProduct
    imported: bool

    def to_dict(self):
        data = self.product.to_dict()
        data["imported"] = self.imported
        return data


@dataclass
class ImportReport:
    """가져오기 결과"""
    execution: ImportExecution
    products: List[ImportedProduct] = field(default_factory=list)

    @property
    def imported_count(self) -> int:
        return self.execution.counters.imported


class ImportLocks:
    """연결별 동시 실행 방지 (프로세스 단위)"""

    def __init__(self):
        self._running: Set[str] = set()

    def is_running(self, connection_id: str) -> bool:
        return connection_id in self._running

    @asynccontextmanager
    async def hold(self, connection_id: str) -> AsyncIterator[None]:
        if connection_id in self._running:
            raise ImportInProgressError(
                f"이미 가져오기 또는 동기화가 실행 중인 연결입니다: {connection_id}",
                {"connection_id": connection_id}
            )
        self._running.add(connection_id)
        try:
            yield
        finally:
            self._running.discard(connection_id)


async def load_usable_connection(repository: RepositoryPort, clock: ClockPort, connection_id: str) -> Connection:
    """연결 조회 후 사용 가능 여부와 토큰 만료 검증 (마켓 호출 전)"""
    connection = await repository.get_connection(connection_id)
    if connection is None:
        raise ConnectionNotFoundError(f"API 연결을 찾을 수 없습니다: {connection_id}")

    if not connection.is_usable():
        raise ConnectionInactiveError(
            f"사용할 수 없는 연결입니다 (status={connection.status.value}, active={connection.is_active})",
            {"connection_id": connection.id, "status": connection.status.value}
        )

    if connection.is_token_expired(clock.now()):
        raise TokenExpiredError(
            "토큰이 만료되었습니다. 갱신 후 다시 시도하세요",
            {"connection_id": connection.id,
             "expires_at": connection.expires_at.isoformat() if connection.expires_at else None}
        )
    return connection


class ImportProductsUseCase:
    """연결 검증 → (선택 | 검색) → 상세 조회 → 정규화 → upsert → 실행 이력 기록"""

    def __init__(
        self,
        registry: MarketplaceRegistry,
        repository: RepositoryPort,
        clock: ClockPort,
        policy: Optional[ImportPolicy] = None,
        locks: Optional[ImportLocks] = None
    ):
        self.registry = registry
        self.repository = repository
        self.clock = clock
        self.policy = policy or ImportPolicy()
        self.locks = locks or ImportLocks()

    async def execute(
        self,
        connection_id: str,
        search_query: Optional[str] = None,
        product_ids: Optional[List[str]] = None
    ) -> ImportReport:
        """가져오기 실행"""
        product_ids = [str(pid).strip() for pid in (product_ids or []) if str(pid).strip()]
        query = (search_query or "").strip()
        if not product_ids and not query:
            raise ImportRequestError("searchQuery 또는 productIds 가 필요합니다", field="searchQuery")

        # 마켓 호출 전에 연결/토큰 검증
        connection = await load_usable_connection(self.repository, self.clock, connection_id)
        adapter = self.registry.get(connection.marketplace)
        default_markup = MarkupPolicy.from_settings(connection.settings, self.policy.default_markup)

        async with self.locks.hold(connection.id):
            if product_ids:
                return await self._run(
                    adapter, connection, default_markup, ExecutionType.SELECTIVE_IMPORT, query, product_ids
                )
            return await self._run(
                adapter, connection, default_markup, ExecutionType.SEARCH_IMPORT, query, None
            )

    async def _run(
        self,
        adapter: MarketplaceAdapter,
        connection: Connection,
        default_markup: MarkupPolicy,
        execution_type: ExecutionType,
        query: str,
        product_ids: Optional[List[str]]
    ) -> ImportReport:
        execution = ImportExecution(
            id=str(uuid.uuid4()),
            connection_id=connection.id,
            execution_type=execution_type,
            started_at=self.clock.now(),
            summary={
                "search_query": query or None,
                "import_mode": "selective" if product_ids else "search"
            }
        )
        report = ImportReport(execution=execution)
        counters = execution.counters
        error_message: Optional[str] = None

        logger.info(
            f"상품 가져오기 시작: connection={connection.id} "
            f"marketplace={connection.marketplace.value} mode={execution.summary['import_mode']}"
        )

        try:
            if product_ids:
                candidates: List[Any] = list(product_ids)
                counters.found = len(product_ids)
            else:
                try:
                    results = await adapter.search(query, connection.access_token, self.policy.search_limit)
                except MarketplaceFetchError as e:
                    logger.error(f"마켓 검색 실패: connection={connection.id} - {e.message}")
                    error_message = e.message
                    return report

                counters.found = len(results)
                candidates = results[:self.policy.max_products]

            fetched = 0
            for index, candidate in enumerate(candidates):
                resolved = self._resolve_id(adapter, candidate, from_search=not product_ids)
                if resolved.is_failure():
                    counters.add_skip(f"#{index}", resolved.get_error())
                    continue
                product_id = resolved.get_value()

                if fetched > 0 and self.policy.request_delay_seconds > 0:
                    await self.clock.sleep(self.policy.request_delay_seconds)
                fetched += 1

                result = await self._fetch_and_normalize(adapter, connection, default_markup, product_id)
                if result.is_failure():
                    counters.add_skip(product_id, result.get_error())
                    continue

                counters.processed += 1
                product = result.get_value()
                try:
                    product = await self.repository.upsert_product(product)
                except Exception as e:
                    logger.error(f"상품 저장 실패 {product_id}: {e}", exc_info=True)
                    counters.add_skip(product_id, f"upsert: {e}")
                    report.products.append(ImportedProduct(product=product, imported=False))
                    continue

                counters.imported += 1
                report.products.append(ImportedProduct(product=product, imported=True))
                log_product_sync(logger, "imported", product_id, {"connection_id": connection.id})
        except Exception as e:
            logger.error(f"상품 가져오기 중단: connection={connection.id} - {e!r}", exc_info=True)
            error_message = f"중단: {e!r}"
            raise
        finally:
            execution.complete(self.clock.now(), error_message=error_message)
            await self.repository.add_execution(execution)

        logger.info(
            f"상품 가져오기 완료: connection={connection.id} status={execution.status.value} "
            f"found={counters.found} processed={counters.processed} imported={counters.imported}"
        )
        return report

    def _resolve_id(self, adapter: MarketplaceAdapter, candidate: Any, from_search: bool) -> "Result[str]":
        """검색 결과(원본) 또는 지정 ID 에서 상품 ID 확인"""
        if not from_search:
            return Success(candidate)
        try:
            return Success(adapter.product_id_of(candidate))
        except (KeyError, TypeError) as e:
            logger.warning(f"상품 ID 없는 검색 결과, 건너뜀: {e!r}")
            return Failure(f"search: 상품 ID 없음 {e!r}", stage="search")

    async def _fetch_and_normalize(
        self,
        adapter: MarketplaceAdapter,
        connection: Connection,
        default_markup: MarkupPolicy,
        product_id: str
    ) -> "Result[NormalizedProduct]":
        """상품 1건 조회 및 정규화 (실패는 Failure 로 반환)"""
        try:
            raw = await adapter.fetch_by_id(product_id, connection.access_token)
        except MarketplaceFetchError as e:
            logger.warning(f"상품 조회 실패, 건너뜀 {product_id}: {e.message}")
            return Failure(e.message, stage="fetch")

        try:
            existing = await self.repository.find_product(connection.id, product_id)
        except Exception as e:
            logger.error(f"기존 상품 조회 실패, 건너뜀 {product_id}: {e}", exc_info=True)
            return Failure(f"lookup: {e}", stage="lookup")
        markup = existing.markup if existing else default_markup

        try:
            product = adapter.normalize(raw, connection, markup, self.clock.now())
        except (KeyError, TypeError, ValueError, InvalidOperation) as e:
            logger.warning(f"상품 정규화 실패, 건너뜀 {product_id}: {e!r}")
            return Failure(f"normalize: {e!r}", stage="normalize")

        product.sync_status = SyncState.COMPLETED
        if existing is not None:
            product.auto_sync_enabled = existing.auto_sync_enabled
        return Success(product)
