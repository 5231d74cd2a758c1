"""
Endpoint modules.

Each module defines an APIRouter for one domain; they are aggregated in
``api/router.py``.
"""
