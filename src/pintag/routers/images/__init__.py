"""Aggregated images router combining all sub-routers."""

from fastapi import APIRouter
from .core import router as core_router
from .file_serving import router as file_serving_router
from .tags import router as tags_router
from .comments import router as comments_router

# Main router with shared prefix and tags
router = APIRouter(
    prefix="/api/v1",
    tags=["images"]
)

# /images/random is declared in core before /images/{image_ref}
router.include_router(core_router)
router.include_router(file_serving_router)
router.include_router(tags_router)
router.include_router(comments_router)
