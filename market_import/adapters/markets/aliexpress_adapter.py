"""알리익스프레스 어댑터 (스텁)"""
from datetime import datetime, timezone
from typing import List, Optional

import httpx

from market_import.core.entities.connection import Connection, Marketplace
from market_import.core.entities.product import MarkupPolicy, NormalizedProduct, to_decimal
from market_import.core.exceptions import MarketplaceFetchError
from market_import.core.ports.marketplace_port import MarketplaceAdapter, RawProduct
from market_import.shared.logging import get_logger

logger = get_logger(__name__)


class AliExpressAdapter(MarketplaceAdapter):
    """Affiliate API 상품 매핑만 제공"""

    marketplace = Marketplace.ALIEXPRESS

    def __init__(
        self,
        base_url: str = "https://api-sg.aliexpress.com/sync",
        timeout: int = 30,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.base_url = base_url
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self):
        if self._owns_client:
            await self.client.aclose()

    async def search(self, query: str, access_token: str, limit: int) -> List[RawProduct]:
        # TODO: aliexpress.affiliate.product.query 요청 서명(app_secret) 구현
        logger.warning(f"알리익스프레스 검색은 아직 지원하지 않습니다: query={query!r}")
        return []

    async def fetch_by_id(self, product_id: str, access_token: str) -> RawProduct:
        raise MarketplaceFetchError(
            f"알리익스프레스 상품 상세 조회는 아직 지원하지 않습니다: {product_id}",
            marketplace=self.marketplace.value
        )

    def product_id_of(self, raw: RawProduct) -> str:
        return str(raw.get("product_id") or raw["promotion_product_id"])

    def normalize(
        self,
        raw: RawProduct,
        connection: Connection,
        markup: Optional[MarkupPolicy] = None,
        synced_at: Optional[datetime] = None
    ) -> NormalizedProduct:
        """affiliate 상품 → 정규화 상품"""
        markup = markup or MarkupPolicy()
        synced_at = synced_at or datetime.now(timezone.utc)
        product_id = self.product_id_of(raw)
        currency = raw.get("target_sale_price_currency") or raw.get("sale_price_currency") or "USD"
        original_price = to_decimal(raw.get("target_sale_price") or raw["sale_price"])

        images = []
        if raw.get("product_main_image_url"):
            images.append(raw["product_main_image_url"])
        small_images = (raw.get("product_small_image_urls") or {}).get("string") or []
        images.extend(url for url in small_images if url not in images)

        return NormalizedProduct(
            connection_id=connection.id,
            marketplace_product_id=product_id,
            marketplace_name="AliExpress",
            title=raw["product_title"],
            description=raw.get("product_title"),
            original_price=original_price,
            price=markup.apply(original_price, currency),
            currency=currency,
            markup=markup,
            available_quantity=int(raw.get("stock_count") or 0),
            condition="new",
            categories=[str(raw["first_level_category_id"])] if raw.get("first_level_category_id") else [],
            images=images,
            attributes={
                "commission_rate": raw.get("commission_rate"),
                "evaluate_rate": raw.get("evaluate_rate"),
            },
            seller_info={"shop_id": raw.get("shop_id"), "shop_url": raw.get("shop_url")},
            marketplace_url=raw.get("product_detail_url"),
            last_sync_at=synced_at
        )
