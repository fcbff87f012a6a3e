"""HTTP routes for the marketplace API.

- ``/user``: registration, login/logout, profile, preferences, purchases
- ``/product``: catalogue listings, product pages, editing and buying

Every route raises ``HttpError`` for expected failures; the handlers in
``app.core.errors`` turn them into ``[{"msg": ...}]`` bodies.
"""
from fastapi import APIRouter

from app.api import products, users

router = APIRouter()
router.include_router(users.router)
router.include_router(products.router)
