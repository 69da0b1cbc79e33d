"""
V1 API router aggregation.

``main.py`` mounts this router at ``/api/v1``.
"""

from fastapi import APIRouter

from estate_ledger.api.v1.endpoints import (
    distributions,
    investments,
    investors,
    organizations,
    properties,
    wallets,
)

api_router = APIRouter()

api_router.include_router(investments.router, prefix="/investments", tags=["Settlement"])
api_router.include_router(investors.router, prefix="/investors", tags=["Investors"])
api_router.include_router(wallets.router, prefix="/wallets", tags=["Wallets"])
api_router.include_router(
    organizations.router, prefix="/organizations", tags=["Organizations"]
)
api_router.include_router(properties.router, prefix="/properties", tags=["Properties"])

# Distributions are nested under a property; the router spells out the full
# path and is mounted without a prefix.
api_router.include_router(distributions.router, tags=["Distributions"])
