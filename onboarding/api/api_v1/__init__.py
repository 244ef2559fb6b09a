"""
API v1 Init
File: onboarding/api/api_v1/__init__.py
"""

from fastapi import APIRouter

from onboarding.api.api_v1.runs import router as runs
from onboarding.api.api_v1.steps import router as steps
from onboarding.api.api_v1.workflows import router as workflows

api_router = APIRouter()

api_router.include_router(runs.router)
api_router.include_router(steps.router)
api_router.include_router(workflows.router)
