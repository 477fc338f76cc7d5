"""API V1 Router"""

from fastapi import APIRouter

# Import endpoint routers
from app.api.v1.endpoints import works, groups, submissions, evaluations

# Create API v1 router
api_router = APIRouter()

# Include endpoint routers with prefixes and tags
api_router.include_router(works.router, tags=["Works"])
api_router.include_router(groups.router, tags=["Groups"])
api_router.include_router(submissions.router, tags=["Submissions"])
api_router.include_router(evaluations.router, prefix="/evaluations", tags=["Evaluations"])
