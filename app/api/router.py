from __future__ import annotations

from fastapi import APIRouter

from app.api.ingest_api import router as ingest_router
from app.api.meta_api import router as meta_router
from app.api.revalidate_api import router as revalidate_router
from app.api.topics_api import router as topics_router

router = APIRouter()

router.include_router(meta_router, tags=["meta"])
router.include_router(ingest_router, tags=["ingest"])
router.include_router(revalidate_router, tags=["ingest"])
router.include_router(topics_router, prefix="/topics", tags=["topics"])
