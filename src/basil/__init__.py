"""Basil retail ERP - pricing, tax and API routing service."""

__version__ = "1.0.0"
