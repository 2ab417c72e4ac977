"""리포지토리 구현체"""
from typing import List, Optional
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker

from market_import.core.entities.connection import Connection, ConnectionStatus, Marketplace
from market_import.core.entities.import_execution import (
    ExecutionStatus, ExecutionType, ImportCounters, ImportExecution
)
from market_import.core.entities.product import MarkupPolicy, NormalizedProduct, SyncState, to_decimal
from market_import.core.ports.clock_port import as_utc
from market_import.core.ports.repo_port import RepositoryPort
from market_import.adapters.persistence.models import ApiConnection, MarketplaceProduct, SyncExecution
from market_import.shared.logging import get_logger

logger = get_logger(__name__)


class SqlAlchemyRepository(RepositoryPort):
    """연결/상품/실행 이력 리포지토리 (호출마다 세션 1개)"""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    # Connection 관련
    async def get_connection(self, connection_id: str) -> Optional[Connection]:
        async with self.session_factory() as session:
            row = await session.get(ApiConnection, connection_id)
            return self._map_connection(row) if row else None

    async def find_connection(self, user_id: str, marketplace: Marketplace) -> Optional[Connection]:
        async with self.session_factory() as session:
            row = await self._select_connection(session, user_id, marketplace)
            return self._map_connection(row) if row else None

    async def upsert_connection(self, connection: Connection) -> Connection:
        """(user_id, marketplace_name) 기준 저장, 동시 삽입 충돌 시 갱신으로 재시도"""
        try:
            return await self._upsert_connection_once(connection)
        except IntegrityError:
            logger.warning(
                f"연결 동시 생성 충돌, 갱신으로 재시도: user={connection.user_id} "
                f"marketplace={connection.marketplace.value}"
            )
            return await self._upsert_connection_once(connection)

    async def _upsert_connection_once(self, connection: Connection) -> Connection:
        async with self.session_factory() as session:
            try:
                row = await self._select_connection(session, connection.user_id, connection.marketplace)
                if row is None:
                    row = ApiConnection(id=connection.id)
                    session.add(row)
                else:
                    connection.id = row.id
                self._fill_connection(row, connection)
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            logger.info(f"연결 저장 완료: {connection.id} ({connection.marketplace.value})")
            return self._map_connection(row)

    async def save_connection(self, connection: Connection) -> None:
        async with self.session_factory() as session:
            try:
                row = await session.get(ApiConnection, connection.id)
                if row is None:
                    row = ApiConnection(id=connection.id)
                    session.add(row)
                self._fill_connection(row, connection)
                await session.commit()
            except Exception as e:
                await session.rollback()
                logger.error(f"연결 저장 실패 {connection.id}: {e}")
                raise

    async def _select_connection(self, session, user_id: str, marketplace: Marketplace) -> Optional[ApiConnection]:
        query = select(ApiConnection).where(
            ApiConnection.user_id == user_id,
            ApiConnection.marketplace_name == marketplace.value
        )
        result = await session.execute(query)
        return result.scalar_one_or_none()

    # Product 관련
    async def find_product(self, connection_id: str, marketplace_product_id: str) -> Optional[NormalizedProduct]:
        async with self.session_factory() as session:
            row = await self._select_product(session, connection_id, marketplace_product_id)
            return self._map_product(row) if row else None

    async def get_product(self, product_id: str) -> Optional[NormalizedProduct]:
        async with self.session_factory() as session:
            row = await session.get(MarketplaceProduct, product_id)
            return self._map_product(row) if row else None

    async def upsert_product(self, product: NormalizedProduct) -> NormalizedProduct:
        """(api_connection_id, marketplace_product_id) 기준 insert-or-update"""
        try:
            return await self._upsert_product_once(product)
        except IntegrityError:
            logger.warning(f"상품 동시 생성 충돌, 갱신으로 재시도: {product.key}")
            return await self._upsert_product_once(product)

    async def _upsert_product_once(self, product: NormalizedProduct) -> NormalizedProduct:
        async with self.session_factory() as session:
            try:
                row = await self._select_product(session, product.connection_id, product.marketplace_product_id)
                if row is None:
                    row = MarketplaceProduct(id=product.id or str(uuid.uuid4()))
                    session.add(row)
                self._fill_product(row, product)
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            return self._map_product(row)

    async def list_products(self, connection_id: str, limit: int = 50, offset: int = 0) -> List[NormalizedProduct]:
        async with self.session_factory() as session:
            query = select(MarketplaceProduct).where(
                MarketplaceProduct.api_connection_id == connection_id
            ).order_by(MarketplaceProduct.last_sync_at.desc()).limit(limit).offset(offset)
            result = await session.execute(query)
            return [self._map_product(row) for row in result.scalars().all()]

    async def list_sync_candidates(self, connection_id: str, limit: int = 150) -> List[NormalizedProduct]:
        """자동 동기화 대상 (마지막 동기화가 오래된 순, 미동기화 우선)"""
        async with self.session_factory() as session:
            query = select(MarketplaceProduct).where(
                MarketplaceProduct.api_connection_id == connection_id,
                MarketplaceProduct.auto_sync_enabled.is_(True)
            ).order_by(
                MarketplaceProduct.last_sync_at.asc().nulls_first(),
                MarketplaceProduct.marketplace_product_id
            ).limit(limit)
            result = await session.execute(query)
            return [self._map_product(row) for row in result.scalars().all()]

    async def _select_product(self, session, connection_id: str, marketplace_product_id: str) -> Optional[MarketplaceProduct]:
        query = select(MarketplaceProduct).where(
            MarketplaceProduct.api_connection_id == connection_id,
            MarketplaceProduct.marketplace_product_id == marketplace_product_id
        )
        result = await session.execute(query)
        return result.scalar_one_or_none()

    # Execution 관련
    async def add_execution(self, execution: ImportExecution) -> None:
        async with self.session_factory() as session:
            try:
                session.add(SyncExecution(
                    id=execution.id,
                    api_connection_id=execution.connection_id,
                    execution_type=execution.execution_type.value,
                    status=execution.status.value,
                    products_found=execution.counters.found,
                    products_processed=execution.counters.processed,
                    products_imported=execution.counters.imported,
                    products_updated=execution.counters.updated,
                    summary=execution.summary,
                    error_message=execution.error_message,
                    started_at=execution.started_at,
                    completed_at=execution.completed_at
                ))
                await session.commit()
            except Exception as e:
                await session.rollback()
                logger.error(f"실행 이력 저장 실패 {execution.id}: {e}")
                raise

    async def list_executions(self, connection_id: str, limit: int = 50) -> List[ImportExecution]:
        async with self.session_factory() as session:
            query = select(SyncExecution).where(
                SyncExecution.api_connection_id == connection_id
            ).order_by(SyncExecution.started_at.desc()).limit(limit)
            result = await session.execute(query)
            return [self._map_execution(row) for row in result.scalars().all()]

    # 매핑
    def _fill_connection(self, row: ApiConnection, connection: Connection) -> None:
        row.user_id = connection.user_id
        row.marketplace_name = connection.marketplace.value
        row.connection_name = connection.connection_name
        row.access_token = connection.access_token
        row.refresh_token = connection.refresh_token
        row.expires_at = connection.expires_at
        row.connection_status = connection.status.value
        row.is_active = connection.is_active
        row.settings = dict(connection.settings or {})
        row.last_test_at = connection.last_test_at
        row.created_at = row.created_at or connection.created_at
        row.updated_at = connection.updated_at

    def _map_connection(self, row: ApiConnection) -> Connection:
        return Connection(
            id=row.id,
            user_id=row.user_id,
            marketplace=Marketplace(row.marketplace_name),
            connection_name=row.connection_name,
            access_token=row.access_token,
            refresh_token=row.refresh_token,
            expires_at=as_utc(row.expires_at),
            status=ConnectionStatus(row.connection_status),
            is_active=bool(row.is_active),
            settings=dict(row.settings or {}),
            last_test_at=as_utc(row.last_test_at),
            created_at=as_utc(row.created_at),
            updated_at=as_utc(row.updated_at)
        )

    def _fill_product(self, row: MarketplaceProduct, product: NormalizedProduct) -> None:
        row.api_connection_id = product.connection_id
        row.marketplace_product_id = product.marketplace_product_id
        row.marketplace_name = product.marketplace_name
        row.title = product.title
        row.description = product.description
        row.condition = product.condition
        row.categories = list(product.categories)
        row.images = list(product.images)
        row.attributes = dict(product.attributes)
        row.original_price = product.original_price
        row.price = product.price
        row.currency = product.currency
        row.markup_type = product.markup.markup_type.value
        row.markup_value = product.markup.value
        row.available_quantity = product.available_quantity
        row.sold_quantity = product.sold_quantity
        row.shipping_info = dict(product.shipping_info)
        row.seller_info = dict(product.seller_info)
        row.marketplace_url = product.marketplace_url
        row.sync_status = product.sync_status.value
        row.last_sync_at = product.last_sync_at
        row.auto_sync_enabled = product.auto_sync_enabled

    def _map_product(self, row: MarketplaceProduct) -> NormalizedProduct:
        return NormalizedProduct(
            id=row.id,
            connection_id=row.api_connection_id,
            marketplace_product_id=row.marketplace_product_id,
            marketplace_name=row.marketplace_name,
            title=row.title,
            description=row.description,
            original_price=to_decimal(row.original_price),
            price=to_decimal(row.price),
            currency=row.currency,
            markup=MarkupPolicy.of(row.markup_type, row.markup_value),
            available_quantity=row.available_quantity or 0,
            sold_quantity=row.sold_quantity or 0,
            condition=row.condition,
            categories=list(row.categories or []),
            images=list(row.images or []),
            attributes=dict(row.attributes or {}),
            shipping_info=dict(row.shipping_info or {}),
            seller_info=dict(row.seller_info or {}),
            marketplace_url=row.marketplace_url,
            last_sync_at=as_utc(row.last_sync_at),
            sync_status=SyncState(row.sync_status or SyncState.PENDING.value),
            auto_sync_enabled=bool(row.auto_sync_enabled)
        )

    def _map_execution(self, row: SyncExecution) -> ImportExecution:
        return ImportExecution(
            id=row.id,
            connection_id=row.api_connection_id,
            execution_type=ExecutionType(row.execution_type),
            status=ExecutionStatus(row.status),
            counters=ImportCounters(
                found=row.products_found or 0,
                processed=row.products_processed or 0,
                imported=row.products_imported or 0,
                updated=row.products_updated or 0,
                skipped=dict((row.summary or {}).get("skipped") or {})
            ),
            summary=dict(row.summary or {}),
            error_message=row.error_message,
            started_at=as_utc(row.started_at),
            completed_at=as_utc(row.completed_at)
        )
