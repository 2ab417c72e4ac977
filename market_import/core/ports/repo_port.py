"""저장소 포트 (인터페이스)"""
from abc import ABC, abstractmethod
from typing import List, Optional

from market_import.core.entities.connection import Connection, Marketplace
from market_import.core.entities.product import NormalizedProduct
from market_import.core.entities.import_execution import ImportExecution


class RepositoryPort(ABC):
    """저장소 인터페이스"""

    # Connection 관련
    @abstractmethod
    async def get_connection(self, connection_id: str) -> Optional[Connection]:
        """연결 ID로 조회"""
        pass

    @abstractmethod
    async def find_connection(self, user_id: str, marketplace: Marketplace) -> Optional[Connection]:
        """(사용자, 마켓) 으로 조회"""
        pass

    @abstractmethod
    async def upsert_connection(self, connection: Connection) -> Connection:
        """(사용자, 마켓) 기준 insert-or-update, 저장된 연결 반환"""
        pass

    @abstractmethod
    async def save_connection(self, connection: Connection) -> None:
        """기존 연결 갱신"""
        pass

    # Product 관련
    @abstractmethod
    async def find_product(self, connection_id: str, marketplace_product_id: str) -> Optional[NormalizedProduct]:
        """(연결, 마켓 상품 ID) 로 조회"""
        pass

    @abstractmethod
    async def get_product(self, product_id: str) -> Optional[NormalizedProduct]:
        """로컬 상품 ID로 조회"""
        pass

    @abstractmethod
    async def upsert_product(self, product: NormalizedProduct) -> NormalizedProduct:
        """(연결, 마켓 상품 ID) 기준 insert-or-update"""
        pass

    @abstractmethod
    async def list_products(self, connection_id: str, limit: int = 50, offset: int = 0) -> List[NormalizedProduct]:
        """연결별 상품 목록"""
        pass

    @abstractmethod
    async def list_sync_candidates(self, connection_id: str, limit: int = 150) -> List[NormalizedProduct]:
        """auto_sync_enabled 상품 (last_sync_at 오래된 순)"""
        pass

    # Execution 관련
    @abstractmethod
    async def add_execution(self, execution: ImportExecution) -> None:
        """실행 이력 저장"""
        pass

    @abstractmethod
    async def list_executions(self, connection_id: str, limit: int = 50) -> List[ImportExecution]:
        """연결별 실행 이력"""
        pass
