"""아마존 SP-API 어댑터 (스텁)"""
from datetime import datetime, timezone
from typing import List, Optional

import httpx

from market_import.core.entities.connection import Connection, Marketplace
from market_import.core.entities.product import MarkupPolicy, NormalizedProduct, to_decimal
from market_import.core.exceptions import MarketplaceFetchError
from market_import.core.ports.marketplace_port import MarketplaceAdapter, RawProduct
from market_import.shared.logging import get_logger

logger = get_logger(__name__)


class AmazonAdapter(MarketplaceAdapter):
    """Catalog Items API 매핑만 제공, 호출은 AWS SigV4 서명 구현 전까지 비활성"""

    marketplace = Marketplace.AMAZON

    def __init__(
        self,
        base_url: str = "https://sellingpartnerapi-na.amazon.com",
        timeout: int = 30,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.base_url = base_url.rstrip('/')
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self):
        if self._owns_client:
            await self.client.aclose()

    async def search(self, query: str, access_token: str, limit: int) -> List[RawProduct]:
        # TODO: /catalog/2022-04-01/items 호출에 SigV4 서명 추가
        logger.warning(f"아마존 검색은 아직 지원하지 않습니다: query={query!r}")
        return []

    async def fetch_by_id(self, product_id: str, access_token: str) -> RawProduct:
        raise MarketplaceFetchError(
            f"아마존 상품 상세 조회는 아직 지원하지 않습니다: {product_id}",
            marketplace=self.marketplace.value
        )

    def product_id_of(self, raw: RawProduct) -> str:
        return str(raw["asin"])

    def normalize(
        self,
        raw: RawProduct,
        connection: Connection,
        markup: Optional[MarkupPolicy] = None,
        synced_at: Optional[datetime] = None
    ) -> NormalizedProduct:
        """카탈로그 아이템 → 정규화 상품"""
        markup = markup or MarkupPolicy()
        synced_at = synced_at or datetime.now(timezone.utc)
        asin = str(raw["asin"])
        price = raw.get("price") or {}
        currency = price.get("currencyCode") or "USD"
        original_price = to_decimal(price.get("amount") or 0)
        summaries = raw.get("summaries") or []

        return NormalizedProduct(
            connection_id=connection.id,
            marketplace_product_id=asin,
            marketplace_name="Amazon",
            title=raw.get("itemName") or raw["title"],
            description=raw.get("description") or "",
            original_price=original_price,
            price=markup.apply(original_price, currency),
            currency=currency,
            markup=markup,
            available_quantity=int((summaries[0] if summaries else {}).get("totalQuantity") or 0),
            condition="new",
            categories=[raw["productType"]] if raw.get("productType") else [],
            images=[image["link"] for image in raw.get("images") or [] if image.get("link")],
            attributes=raw.get("attributes") or {},
            seller_info={"seller_id": connection.settings.get("seller_id")},
            marketplace_url=f"https://amazon.com/dp/{asin}",
            last_sync_at=synced_at
        )
