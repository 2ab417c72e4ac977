"""마켓 어댑터 레지스트리 구성"""
from typing import Optional

import httpx

from market_import.adapters.markets.aliexpress_adapter import AliExpressAdapter
from market_import.adapters.markets.amazon_adapter import AmazonAdapter
from market_import.adapters.markets.mercadolivre_adapter import MercadoLivreAdapter
from market_import.core.ports.marketplace_port import MarketplaceRegistry
from market_import.shared.config import Settings


def build_registry(settings: Settings, client: Optional[httpx.AsyncClient] = None) -> MarketplaceRegistry:
    """설정 기반 어댑터 등록 (마켓 추가 시 여기에 한 줄 추가)"""
    return MarketplaceRegistry([
        MercadoLivreAdapter(
            base_url=settings.mercadolivre_api_url,
            site_id=settings.mercadolivre_site_id,
            timeout=settings.request_timeout,
            client=client
        ),
        AmazonAdapter(base_url=settings.amazon_api_url, timeout=settings.request_timeout, client=client),
        AliExpressAdapter(base_url=settings.aliexpress_api_url, timeout=settings.request_timeout, client=client),
    ])
