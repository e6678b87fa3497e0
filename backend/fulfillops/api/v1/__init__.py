"""
API v1 Router - FulfillOps
"""
from fastapi import APIRouter
from fulfillops.api.v1.endpoints import fulfillments

router = APIRouter()

# Fulfillment availability
router.include_router(fulfillments.router)
