"""Visitor cart store persisted in visitor storage under ``shopping-cart``."""
from __future__ import annotations

import json
import logging
from decimal import Decimal
from typing import Any, Mapping

from storefront.core.client_storage import VisitorStorage
from storefront.core.exceptions import StorageException
from storefront.core.sentry_integration import capture_exception
from storefront.domain.cart import CART_STORAGE_KEY, CartLineItem, parse_quantity, product_key

logger = logging.getLogger(__name__)


class CartStore:
    """Single owner of a visitor's line items.

    Every mutation updates memory first, then flushes the whole cart. A failed
    flush leaves the cart dirty and is retried on the next mutation or
    ``flush()``; memory stays authoritative until a write succeeds.
    """

    def __init__(self, storage: VisitorStorage):
        self._storage = storage
        self._items: list[CartLineItem] = []
        self._loaded = False
        self._dirty = False
        self._deferred: list[tuple[str, tuple[Any, ...]]] = []

    # ---------- state ----------

    @property
    def is_loading(self) -> bool:
        return not self._loaded

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    @property
    def cart(self) -> tuple[dict[str, Any], ...]:
        return tuple(item.to_dict() for item in self._items)

    def load(self) -> None:
        """Read the persisted cart; unreadable data yields an empty cart."""
        self._items = self._read_persisted()
        self._loaded = True

        deferred, self._deferred = self._deferred, []
        for op, args in deferred:
            getattr(self, op)(*args)

    def _read_persisted(self) -> list[CartLineItem]:
        try:
            raw = self._storage.get_item(CART_STORAGE_KEY)
        except StorageException as exc:
            logger.error("Error loading cart for visitor %s: %s", self._storage.visitor_id, exc)
            return []
        if not raw:
            return []

        try:
            payload = json.loads(raw)
        except (TypeError, ValueError) as exc:
            logger.warning("Stored cart for visitor %s is corrupted: %s", self._storage.visitor_id, exc)
            return []
        if not isinstance(payload, list):
            logger.warning("Stored cart for visitor %s is not a list", self._storage.visitor_id)
            return []

        items: list[CartLineItem] = []
        by_key: dict[str, CartLineItem] = {}
        for raw_item in payload:
            if not isinstance(raw_item, Mapping):
                continue
            item = CartLineItem.from_dict(raw_item)
            if item is None:
                continue
            existing = by_key.get(item.key)
            if existing is not None:
                existing.quantity += item.quantity
                continue
            by_key[item.key] = item
            items.append(item)
        return items

    def flush(self) -> bool:
        """Write the cart when dirty. Returns True when storage holds the current cart."""
        if not self._dirty:
            return True
        if not self._loaded:
            return False

        serialized = json.dumps([item.to_dict() for item in self._items], ensure_ascii=False, default=str)
        try:
            self._storage.set_item(CART_STORAGE_KEY, serialized)
        except StorageException as exc:
            logger.error("Error saving cart for visitor %s: %s", self._storage.visitor_id, exc)
            capture_exception(exc, cart={"visitor_id": self._storage.visitor_id, "items": len(self._items)})
            return False
        self._dirty = False
        return True

    def _mutated(self, op: str, *args: Any) -> None:
        self._dirty = True
        if not self._loaded:
            self._deferred.append((op, args))
            return
        self.flush()

    def _find(self, product_id: Any) -> int:
        key = product_key(product_id)
        for idx, item in enumerate(self._items):
            if item.key == key:
                return idx
        return -1

    # ---------- mutations ----------

    def add_to_cart(self, product: Mapping[str, Any], quantity: int = 1) -> CartLineItem | None:
        if not isinstance(product, Mapping) or product.get("id") in (None, ""):
            logger.warning("Rejected add_to_cart: product without id")
            return None
        amount = parse_quantity(quantity)
        if amount is None:
            logger.warning("Rejected add_to_cart: invalid quantity %r", quantity)
            return None

        idx = self._find(product["id"])
        if idx >= 0:
            item = self._items[idx]
            item.quantity += amount
        else:
            item = CartLineItem.from_product(product, quantity=amount)
            self._items.append(item)

        self._mutated("add_to_cart", dict(product), amount)
        return item

    def remove_from_cart(self, product_id: Any) -> bool:
        idx = self._find(product_id)
        # before load the persisted cart may hold the product even if memory does not
        if idx < 0 and self._loaded:
            return False
        if idx >= 0:
            del self._items[idx]
        self._mutated("remove_from_cart", product_id)
        return True

    def update_quantity(self, product_id: Any, new_quantity: int) -> bool:
        try:
            if new_quantity <= 0:
                return self.remove_from_cart(product_id)
        except TypeError:
            logger.warning("Rejected update_quantity: invalid quantity %r", new_quantity)
            return False

        amount = parse_quantity(new_quantity)
        if amount is None:
            logger.warning("Rejected update_quantity: invalid quantity %r", new_quantity)
            return False

        idx = self._find(product_id)
        if idx < 0 and self._loaded:
            return False
        if idx >= 0:
            self._items[idx].quantity = amount
        self._mutated("update_quantity", product_id, amount)
        return True

    def clear_cart(self) -> None:
        self._items = []
        self._mutated("clear_cart")

    # ---------- aggregates ----------

    def get_total_items(self) -> int:
        return sum(item.quantity for item in self._items)

    def get_total_price(self) -> Decimal:
        return sum((item.subtotal for item in self._items), Decimal("0"))

    def summary(self) -> dict[str, Any]:
        return {
            "items": list(self.cart),
            "total_items": self.get_total_items(),
            "total_price": str(self.get_total_price()),
            "is_loading": self.is_loading,
            "saved": not self._dirty,
        }
