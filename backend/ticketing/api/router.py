from fastapi import APIRouter

from ticketing.api.routes import health, checkout, payment, admin

api_router = APIRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])  # GET /
api_router.include_router(checkout.router, prefix="/checkout", tags=["checkout"])  # POST /, POST /free, GET /transactions/{id}
api_router.include_router(payment.router, prefix="/payment", tags=["payment"])  # gateway webhooks
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])  # admin endpoints
