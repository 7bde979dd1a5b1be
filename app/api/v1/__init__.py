from fastapi import APIRouter

from app.api.v1.routers import (
    clients,
    health,
    loans,
    payments,
)

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(clients.router)
api_router.include_router(loans.router)
api_router.include_router(payments.router)

__all__ = ["api_router"]
