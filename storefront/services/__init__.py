"""Business services owning visitor state."""

from .cart_store import CartStore

__all__ = ["CartStore"]
