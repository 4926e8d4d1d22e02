from fastapi import APIRouter

from hrleave.api.balances import employee_balance_router, rollover_router
from hrleave.api.employees import employees_router
from hrleave.api.leave_types import leave_types_router
from hrleave.api.requests import requests_router

api_router = APIRouter()
api_router.include_router(leave_types_router)
api_router.include_router(employees_router)
api_router.include_router(employee_balance_router)
api_router.include_router(rollover_router)
api_router.include_router(requests_router)
