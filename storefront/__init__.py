"""
Storefront back end.

This package provides a FastAPI application for the shop: cookie-based
sessions with a routing guard in front of the pages, plus order, review,
product and upload APIs over database and object storage abstractions.
"""
