import logging
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    status: Literal["ok", "error"] = Field(..., description="État de la base de données")


@router.get("/health", response_model=HealthResponse)
async def health(db: AsyncSession = Depends(get_session)):
    """Vérifie que la base de données répond."""
    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar_one()
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(status_code=500, detail=f"Database unavailable: {e!s}") from None

    return HealthResponse(status="ok")
