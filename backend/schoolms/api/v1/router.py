from fastapi import APIRouter
from schoolms.api.v1.endpoints import auth, dashboard, payments

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
api_router.include_router(payments.router, prefix="/payments", tags=["Payments"])
