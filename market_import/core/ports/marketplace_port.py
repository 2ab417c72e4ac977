"""마켓 어댑터 포트 (인터페이스)"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional
from datetime import datetime

from market_import.core.entities.connection import Connection, Marketplace
from market_import.core.entities.product import MarkupPolicy, NormalizedProduct
from market_import.core.exceptions import UnsupportedMarketplaceError

RawProduct = Dict[str, Any]


class MarketplaceAdapter(ABC):
    """마켓별 검색/상세 조회/정규화 인터페이스"""

    marketplace: Marketplace

    @abstractmethod
    async def search(self, query: str, access_token: str, limit: int) -> List[RawProduct]:
        """검색 (1회 호출, 결과는 limit 이하)"""
        pass

    @abstractmethod
    async def fetch_by_id(self, product_id: str, access_token: str) -> RawProduct:
        """상품 상세 조회 (1회 호출)"""
        pass

    @abstractmethod
    def normalize(
        self,
        raw: RawProduct,
        connection: Connection,
        markup: Optional[MarkupPolicy] = None,
        synced_at: Optional[datetime] = None
    ) -> NormalizedProduct:
        """원본 상품을 정규화 상품으로 변환 (순수 함수)"""
        pass

    def product_id_of(self, raw: RawProduct) -> str:
        """검색 결과에서 상품 ID 추출"""
        return str(raw["id"])


class MarketplaceRegistry:
    """마켓 이름 → 어댑터 조회 테이블"""

    def __init__(self, adapters: Optional[Iterable[MarketplaceAdapter]] = None):
        self._adapters: Dict[Marketplace, MarketplaceAdapter] = {}
        for adapter in adapters or []:
            self.register(adapter)

    def register(self, adapter: MarketplaceAdapter) -> None:
        self._adapters[adapter.marketplace] = adapter

    def get(self, marketplace) -> MarketplaceAdapter:
        """어댑터 조회, 없으면 UnsupportedMarketplaceError"""
        key = marketplace if isinstance(marketplace, Marketplace) else Marketplace.parse(marketplace)
        adapter = self._adapters.get(key)
        if adapter is None:
            raise UnsupportedMarketplaceError(key.value)
        return adapter

    def names(self) -> List[str]:
        return [marketplace.value for marketplace in self._adapters]

    async def aclose(self) -> None:
        """어댑터 HTTP 클라이언트 정리"""
        for adapter in self._adapters.values():
            close = getattr(adapter, "aclose", None)
            if close is not None:
                await close()
