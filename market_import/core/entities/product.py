"""마켓 상품 미러 도메인 엔티티"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Dict, Any, Optional, Union
from datetime import datetime
from enum import Enum

from market_import.core.exceptions import ValidationError

# 통화별 최소 단위 (소수 자릿수), 목록에 없으면 2
CURRENCY_MINOR_UNITS = {
    "JPY": 0,
    "KRW": 0,
    "CLP": 0,
    "VND": 0,
    "PYG": 0,
}

Number = Union[int, float, str, Decimal]


def to_decimal(value: Number) -> Decimal:
    """float 오차 없이 Decimal 로 변환"""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_to_currency(amount: Decimal, currency: Optional[str]) -> Decimal:
    """통화 최소 단위로 반올림 (half-up)"""
    digits = CURRENCY_MINOR_UNITS.get((currency or "").upper(), 2)
    return amount.quantize(Decimal(1).scaleb(-digits), rounding=ROUND_HALF_UP)


class MarkupType(Enum):
    """마크업 방식"""
    PERCENTAGE = "percentage"
    FLAT = "flat"


class SyncState(Enum):
    """상품 동기화 상태"""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class MarkupPolicy:
    """판매가 = 원가 × (1 + value/100) 또는 원가 + value"""
    markup_type: MarkupType = MarkupType.PERCENTAGE
    value: Decimal = Decimal("30")

    def __post_init__(self):
        object.__setattr__(self, "value", to_decimal(self.value))
        if self.value < 0:
            raise ValidationError("마크업 값은 0 이상이어야 합니다", field="markup_value")

    @classmethod
    def of(cls, markup_type: Union[str, MarkupType], value: Number) -> "MarkupPolicy":
        """문자열 타입 허용 생성자"""
        try:
            kind = markup_type if isinstance(markup_type, MarkupType) else MarkupType(markup_type)
        except ValueError:
            raise ValidationError(f"알 수 없는 마크업 타입: {markup_type}", field="markup_type")
        return cls(markup_type=kind, value=to_decimal(value))

    @classmethod
    def from_settings(cls, settings: Dict[str, Any], default: "MarkupPolicy") -> "MarkupPolicy":
        """연결 설정의 markup_type/markup_value, 없으면 기본값"""
        if settings.get("markup_value") is None:
            return default
        return cls.of(settings.get("markup_type") or default.markup_type, settings["markup_value"])

    def apply(self, original_price: Number, currency: Optional[str]) -> Decimal:
        """판매가 계산"""
        price = to_decimal(original_price)
        if self.markup_type == MarkupType.PERCENTAGE:
            price = price * (Decimal(1) + self.value / Decimal(100))
        else:
            price = price + self.value
        return round_to_currency(price, currency)


@dataclass
class NormalizedProduct:
    """정규화된 마켓 상품 (연결 + 마켓 상품 ID 단위로 유일)"""
    connection_id: str
    marketplace_product_id: str
    marketplace_name: str
    title: str
    original_price: Decimal
    price: Decimal
    currency: str
    markup: MarkupPolicy
    description: Optional[str] = None
    available_quantity: int = 0
    sold_quantity: int = 0
    condition: Optional[str] = None
    categories: List[str] = field(default_factory=list)
    images: List[str] = field(default_factory=list)
    attributes: Dict[str, Any] = field(default_factory=dict)
    shipping_info: Dict[str, Any] = field(default_factory=dict)
    seller_info: Dict[str, Any] = field(default_factory=dict)
    marketplace_url: Optional[str] = None
    last_sync_at: Optional[datetime] = None
    sync_status: SyncState = SyncState.PENDING
    auto_sync_enabled: bool = True
    id: Optional[str] = None

    @property
    def key(self) -> tuple:
        return (self.connection_id, self.marketplace_product_id)

    def reprice(self, markup: MarkupPolicy) -> None:
        """마크업 변경 후 판매가 재계산"""
        self.markup = markup
        self.price = markup.apply(self.original_price, self.currency)

    def to_dict(self) -> Dict[str, Any]:
        """API 응답용 딕셔너리"""
        return {
            'id': self.id,
            'api_connection_id': self.connection_id,
            'marketplace_product_id': self.marketplace_product_id,
            'marketplace_name': self.marketplace_name,
            'title': self.title,
            'description': self.description,
            'price': float(self.price),
            'original_price': float(self.original_price),
            'currency': self.currency,
            'available_quantity': self.available_quantity,
            'sold_quantity': self.sold_quantity,
            'condition': self.condition,
            'categories': self.categories,
            'images': self.images,
            'attributes': self.attributes,
            'shipping_info': self.shipping_info,
            'seller_info': self.seller_info,
            'marketplace_url': self.marketplace_url,
            'markup_type': self.markup.markup_type.value,
            'markup_value': float(self.markup.value),
            'last_sync_at': self.last_sync_at.isoformat() if self.last_sync_at else None,
            'sync_status': self.sync_status.value,
            'auto_sync_enabled': self.auto_sync_enabled
        }
