"""Storefront service for a school-supplies retailer."""

__version__ = "1.0.0"
