"""메르카도 리브레 마켓 어댑터"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import time

import httpx

from market_import.core.entities.connection import Connection, Marketplace
from market_import.core.entities.product import MarkupPolicy, NormalizedProduct, to_decimal
from market_import.core.exceptions import MarketplaceFetchError
from market_import.core.ports.marketplace_port import MarketplaceAdapter, RawProduct
from market_import.shared.logging import get_logger, log_api_request

logger = get_logger(__name__)

# 검색 API 한 페이지 최대 건수
MAX_SEARCH_PAGE_SIZE = 50


def _attribute_value(raw: RawProduct, attribute_id: str) -> Optional[str]:
    for attribute in raw.get("attributes") or []:
        if attribute.get("id") == attribute_id:
            return attribute.get("value_name")
    return None


class MercadoLivreAdapter(MarketplaceAdapter):
    """메르카도 리브레 REST API 어댑터"""

    marketplace = Marketplace.MERCADOLIVRE

    def __init__(
        self,
        base_url: str = "https://api.mercadolibre.com",
        site_id: str = "MLB",
        timeout: int = 30,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.base_url = base_url.rstrip('/')
        self.site_id = site_id
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self):
        if self._owns_client:
            await self.client.aclose()

    async def search(self, query: str, access_token: str, limit: int) -> List[RawProduct]:
        """사이트 검색"""
        page_size = max(1, min(limit, MAX_SEARCH_PAGE_SIZE))
        data = await self._get(
            f"/sites/{self.site_id}/search",
            access_token,
            params={"q": query, "limit": page_size}
        )
        results = (data.get("results") or []) if isinstance(data, dict) else None
        if not isinstance(results, list):
            raise MarketplaceFetchError(
                f"메르카도 리브레 검색 응답 형식 오류: {type(data).__name__}",
                marketplace=self.marketplace.value
            )
        return results[:limit]

    async def fetch_by_id(self, product_id: str, access_token: str) -> RawProduct:
        """상품 상세 조회"""
        data = await self._get(f"/items/{product_id}", access_token)
        if not isinstance(data, dict):
            raise MarketplaceFetchError(
                f"메르카도 리브레 상품 응답 형식 오류: {product_id}",
                marketplace=self.marketplace.value
            )
        return data

    def normalize(
        self,
        raw: RawProduct,
        connection: Connection,
        markup: Optional[MarkupPolicy] = None,
        synced_at: Optional[datetime] = None
    ) -> NormalizedProduct:
        """/items 응답 → 정규화 상품"""
        markup = markup or MarkupPolicy()
        synced_at = synced_at or datetime.now(timezone.utc)
        original_price = to_decimal(raw["price"])
        currency = raw.get("currency_id") or "BRL"
        descriptions = raw.get("descriptions") or []
        description = (descriptions[0].get("plain_text") if descriptions else None) or raw.get("title")

        return NormalizedProduct(
            connection_id=connection.id,
            marketplace_product_id=str(raw["id"]),
            marketplace_name="MercadoLivre",
            title=raw["title"],
            description=description,
            original_price=original_price,
            price=markup.apply(original_price, currency),
            currency=currency,
            markup=markup,
            available_quantity=int(raw.get("available_quantity") or 0),
            sold_quantity=int(raw.get("sold_quantity") or 0),
            condition=raw.get("condition"),
            categories=[raw["category_id"]] if raw.get("category_id") else [],
            images=[
                picture.get("secure_url") or picture.get("url")
                for picture in raw.get("pictures") or []
                if picture.get("secure_url") or picture.get("url")
            ],
            attributes={
                "brand": _attribute_value(raw, "BRAND"),
                "model": _attribute_value(raw, "MODEL"),
                "gtin": _attribute_value(raw, "GTIN"),
            },
            shipping_info=raw.get("shipping") or {},
            seller_info={
                "seller_id": raw.get("seller_id"),
                "permalink": raw.get("permalink"),
            },
            marketplace_url=raw.get("permalink"),
            last_sync_at=synced_at,
            auto_sync_enabled=True
        )

    async def _get(self, path: str, access_token: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Bearer 인증 GET, 실패는 MarketplaceFetchError"""
        url = f"{self.base_url}{path}"
        started = time.monotonic()
        try:
            response = await self.client.get(
                url,
                params=params,
                headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"}
            )
        except httpx.RequestError as e:
            logger.error(f"메르카도 리브레 요청 실패 {path}: {e}")
            raise MarketplaceFetchError(f"메르카도 리브레 요청 실패: {e}", marketplace=self.marketplace.value)

        log_api_request(logger, "GET", path, response.status_code, time.monotonic() - started)

        if response.status_code >= 400:
            raise MarketplaceFetchError(
                f"메르카도 리브레 API 오류: {response.status_code} - {response.text[:200]}",
                marketplace=self.marketplace.value,
                status_code=response.status_code
            )

        try:
            return response.json()
        except ValueError as e:
            raise MarketplaceFetchError(f"메르카도 리브레 응답 형식 오류: {e}", marketplace=self.marketplace.value)
