"""API v1 router composition."""

from fastapi import APIRouter

from fulfillment.api.v1.endpoints import auth, branches, deliveries, orders

api_router: APIRouter = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(branches.router, prefix="/branches", tags=["branches"])
api_router.include_router(deliveries.router, prefix="/deliveries", tags=["deliveries"])
api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
