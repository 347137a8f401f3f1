"""Inventory-and-cart consistency engine for the storefront."""

__version__ = "1.0.0"
