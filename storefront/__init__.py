"""Storefront front-end: visitor cart state and hosted checkout hand-off."""

__version__ = "1.0.0"
