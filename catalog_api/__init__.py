"""
Top-level package for the Product Catalog API.

All functionality lives in submodules under ``app``; the ASGI
application is built by ``catalog_api.app.main.create_app``.
"""

__all__ = []
