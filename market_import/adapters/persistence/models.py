"""SQLAlchemy 모델 (헥사고날 아키텍처)"""
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import (
    Column, Integer, String, DateTime, Text, Boolean, Numeric, JSON, Index, UniqueConstraint
)
from sqlalchemy.sql import func

from market_import.shared.config import Settings


# 데이터베이스 모델 베이스
class Base(DeclarativeBase):
    pass


def create_engine_for(settings: Settings, **kwargs) -> AsyncEngine:
    """비동기 엔진 생성 (sqlite+aiosqlite / postgresql+asyncpg)"""
    return create_async_engine(settings.database_url, echo=settings.log_level == "DEBUG", **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables(engine: AsyncEngine) -> None:
    """테이블 생성 (마이그레이션 미사용 환경)"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# 마켓 API 연결 테이블
class ApiConnection(Base):
    __tablename__ = "api_connections"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    marketplace_name = Column(String, nullable=False)  # 'mercadolivre', 'amazon', 'aliexpress'
    connection_name = Column(String, nullable=False)
    access_token = Column(Text)
    refresh_token = Column(Text)
    expires_at = Column(DateTime(timezone=True))
    connection_status = Column(String, default="disconnected", nullable=False)
    is_active = Column(Boolean, default=True)
    settings = Column(JSON, default=dict)
    last_test_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint('user_id', 'marketplace_name', name='uq_api_connections_user_marketplace'),
        Index('ix_api_connections_status_active', 'connection_status', 'is_active'),
    )


# 마켓 상품 미러 테이블
class MarketplaceProduct(Base):
    __tablename__ = "marketplace_products"

    id = Column(String, primary_key=True, index=True)
    api_connection_id = Column(String, index=True, nullable=False)
    marketplace_product_id = Column(String, nullable=False)
    marketplace_name = Column(String, nullable=False)

    # 기본 상품 정보
    title = Column(String, nullable=False)
    description = Column(Text)
    condition = Column(String)
    categories = Column(JSON, default=list)
    images = Column(JSON, default=list)
    attributes = Column(JSON, default=dict)

    # 가격 정보
    original_price = Column(Numeric(14, 2), nullable=False)
    price = Column(Numeric(14, 2), nullable=False)
    currency = Column(String, nullable=False)
    markup_type = Column(String, default="percentage", nullable=False)
    markup_value = Column(Numeric(10, 2), default=30, nullable=False)

    # 재고/판매
    available_quantity = Column(Integer, default=0)
    sold_quantity = Column(Integer, default=0)

    # 배송/판매자
    shipping_info = Column(JSON, default=dict)
    seller_info = Column(JSON, default=dict)
    marketplace_url = Column(String)

    # 동기화 정보
    sync_status = Column(String, default="pending")
    last_sync_at = Column(DateTime(timezone=True))
    auto_sync_enabled = Column(Boolean, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint('api_connection_id', 'marketplace_product_id', name='uq_marketplace_products_connection_item'),
        Index('ix_marketplace_products_last_sync', 'last_sync_at'),
        Index('ix_marketplace_products_auto_sync', 'api_connection_id', 'auto_sync_enabled', 'last_sync_at'),
    )


# 가져오기/동기화 실행 이력 테이블
class SyncExecution(Base):
    __tablename__ = "sync_executions"

    id = Column(String, primary_key=True, index=True)
    api_connection_id = Column(String, index=True, nullable=False)
    execution_type = Column(String, nullable=False)  # 'search_import', 'selective_import', 'sync_<type>'
    status = Column(String, nullable=False)  # 'running', 'completed', 'failed'

    products_found = Column(Integer, default=0)
    products_processed = Column(Integer, default=0)
    products_imported = Column(Integer, default=0)
    products_updated = Column(Integer, default=0)

    summary = Column(JSON, default=dict)
    error_message = Column(Text)

    started_at = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index('ix_sync_executions_connection_started', 'api_connection_id', 'started_at'),
    )
