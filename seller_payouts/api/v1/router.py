from fastapi import APIRouter

from seller_payouts.api.v1.endpoints import commissions


# Create main API router
api_router = APIRouter(prefix="/api/v1")

# ==================== Seller Commissions & Payouts ====================
api_router.include_router(
    commissions.router,
    prefix="/commissions",
    tags=["Commissions"]
)
