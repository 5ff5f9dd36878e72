from fastapi import APIRouter

from app.api.v1 import health
from app.api.v1.endpoints import patients, references

router = APIRouter()

router.include_router(health.router, tags=["health"])
router.include_router(patients.router, prefix="/patients", tags=["patients"])
router.include_router(references.router, tags=["references"])
