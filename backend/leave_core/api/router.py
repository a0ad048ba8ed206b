from fastapi import APIRouter

from leave_core.api.audit_logs import audit_logs_router
from leave_core.api.balances import balances_router, user_balances_router
from leave_core.api.leave_requests import leave_requests_router
from leave_core.api.notifications import notifications_router

api_router = APIRouter()
api_router.include_router(leave_requests_router)
api_router.include_router(user_balances_router)
api_router.include_router(balances_router)
api_router.include_router(notifications_router)
api_router.include_router(audit_logs_router)
