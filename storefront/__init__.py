"""
Storefront backend package.

This package provides a FastAPI application for a small shop: a product
catalog, customer orders and contact messages, and a single admin who
manages them. Persistence, object storage and sessions sit behind small
client abstractions so the service can run fully in memory for development
and tests.
"""
