"""마켓 레지스트리 및 스텁 어댑터 단위 테스트"""
from decimal import Decimal

import pytest

from market_import.adapters.markets.aliexpress_adapter import AliExpressAdapter
from market_import.adapters.markets.amazon_adapter import AmazonAdapter
from market_import.adapters.markets.registry import build_registry
from market_import.core.entities.connection import Connection, Marketplace
from market_import.core.entities.product import MarkupPolicy
from market_import.core.exceptions import MarketplaceFetchError, UnsupportedMarketplaceError
from market_import.core.ports.marketplace_port import MarketplaceRegistry


async def test_build_registry_lookup(settings, http_client):
    registry = build_registry(settings, client=http_client)

    assert registry.get("MercadoLivre").marketplace == Marketplace.MERCADOLIVRE
    assert registry.get(Marketplace.AMAZON).marketplace == Marketplace.AMAZON
    assert sorted(registry.names()) == ["aliexpress", "amazon", "mercadolivre"]


async def test_unregistered_marketplace(ml_adapter):
    registry = MarketplaceRegistry([ml_adapter])

    with pytest.raises(UnsupportedMarketplaceError):
        registry.get("amazon")


async def test_stub_adapters_do_not_call_network(http_client, fake_ml):
    amazon = AmazonAdapter(client=http_client)

    assert await amazon.search("anything", "token", 10) == []
    with pytest.raises(MarketplaceFetchError):
        await amazon.fetch_by_id("B000TEST", "token")
    assert fake_ml.requests == []


def test_amazon_normalize():
    connection = Connection(id="c", user_id="u", marketplace=Marketplace.AMAZON, connection_name="Amazon")
    raw = {
        "asin": "B000TEST",
        "itemName": "Livro",
        "images": [{"link": "https://m.media-amazon.com/1.jpg"}],
        "summaries": [{"totalQuantity": 4}],
        "price": {"amount": "10.00", "currencyCode": "BRL"},
    }

    product = AmazonAdapter().normalize(raw, connection, MarkupPolicy.of("flat", 5))

    assert product.marketplace_product_id == "B000TEST"
    assert product.price == Decimal("15.00")
    assert product.available_quantity == 4
    assert product.marketplace_url == "https://amazon.com/dp/B000TEST"


def test_aliexpress_normalize():
    connection = Connection(id="c", user_id="u", marketplace=Marketplace.ALIEXPRESS, connection_name="AliExpress")
    raw = {
        "product_id": 1005001,
        "product_title": "Cabo USB",
        "target_sale_price": "2.50",
        "target_sale_price_currency": "USD",
        "product_main_image_url": "https://ae01.alicdn.com/main.jpg",
        "shop_id": 99,
    }

    adapter = AliExpressAdapter()
    product = adapter.normalize(raw, connection)

    assert adapter.product_id_of(raw) == "1005001"
    assert product.price == Decimal("3.25")
    assert product.currency == "USD"
    assert product.images == ["https://ae01.alicdn.com/main.jpg"]
