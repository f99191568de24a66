from fastapi import APIRouter

from .authority import router as authority_router
from .enroll import router as enroll_router

api_router = APIRouter()

api_router.include_router(enroll_router, tags=["Enrollment"])
api_router.include_router(authority_router, tags=["Authority"])

__all__ = ["api_router"]
