from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from storefront.services.cart_store import CartStore

from .common import get_cart_store

router = APIRouter(prefix="/cart", tags=["cart"])


class AddItemBody(BaseModel):
    """Product as shown in the catalog; ``id`` is required, other fields pass through."""

    product: dict[str, Any]
    quantity: int = Field(1, ge=1, le=10000)


class UpdateQuantityBody(BaseModel):
    quantity: int = Field(..., le=10000, description="0 or less removes the line item")


@router.get("")
async def get_cart(cart_store: CartStore = Depends(get_cart_store)):
    return cart_store.summary()


@router.post("/items")
async def add_to_cart(body: AddItemBody, cart_store: CartStore = Depends(get_cart_store)):
    item = cart_store.add_to_cart(body.product, body.quantity)
    if item is None:
        return JSONResponse({"error": "product id is required"}, status_code=400)
    return cart_store.summary()


@router.patch("/items/{product_id}")
async def update_quantity(
    product_id: str,
    body: UpdateQuantityBody,
    cart_store: CartStore = Depends(get_cart_store),
):
    cart_store.update_quantity(product_id, body.quantity)
    return cart_store.summary()


@router.delete("/items/{product_id}")
async def remove_from_cart(product_id: str, cart_store: CartStore = Depends(get_cart_store)):
    cart_store.remove_from_cart(product_id)
    return cart_store.summary()


@router.delete("")
async def clear_cart(cart_store: CartStore = Depends(get_cart_store)):
    cart_store.clear_cart()
    return cart_store.summary()
