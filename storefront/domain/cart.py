"""Cart line item type and price parsing."""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

CART_STORAGE_KEY = "shopping-cart"

_CORE_FIELDS = ("id", "name", "price", "quantity")


def parse_price(value: Any) -> Decimal:
    """Parse a price into a non-negative Decimal; anything unusable is 0."""
    if value is None or isinstance(value, bool):
        return Decimal("0")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal("0")
    if not amount.is_finite() or amount < 0:
        return Decimal("0")
    return amount


def product_key(product_id: Any) -> str:
    """Identity used to match line items; ``42`` and ``"42"`` are the same product."""
    return str(product_id).strip()


def parse_quantity(value: Any) -> int | None:
    """Return a positive integer quantity, or None when the value is not one."""
    if isinstance(value, bool):
        return None
    try:
        as_float = float(value)
    except (TypeError, ValueError):
        return None
    if as_float != as_float or as_float <= 0 or not as_float.is_integer():
        return None
    return int(as_float)


@dataclass
class CartLineItem:
    """Single product entry in the cart."""

    id: Any
    name: str = ""
    price: Any = 0
    quantity: int = 1
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return product_key(self.id)

    @property
    def unit_price(self) -> Decimal:
        if self.price in (None, "") and isinstance(self.extra.get("price_range"), Mapping):
            return parse_price(self.extra["price_range"].get("min_price"))
        return parse_price(self.price)

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data.update(
            {
                "id": self.id,
                "name": self.name,
                "price": self.price,
                "quantity": int(self.quantity),
            }
        )
        return data

    @classmethod
    def from_product(cls, product: Mapping[str, Any], quantity: int = 1) -> CartLineItem:
        return cls(
            id=product["id"],
            name=str(product.get("name") or ""),
            price=product.get("price"),
            quantity=quantity,
            extra={k: v for k, v in product.items() if k not in _CORE_FIELDS},
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CartLineItem | None:
        """Rebuild a persisted line item; None when it breaks the cart invariants."""
        if data.get("id") in (None, ""):
            return None
        quantity = parse_quantity(data.get("quantity"))
        if quantity is None:
            return None
        return cls.from_product(data, quantity=quantity)
