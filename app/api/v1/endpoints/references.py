"""Endpoints de lecture des données de référence (antécédents, allergies)."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.security import get_current_user
from app.schemas.patient import ReferenceItem
from app.services import reference_service

router = APIRouter(dependencies=[Depends(get_current_user)])


@router.get(
    "/antecedents/",
    response_model=list[ReferenceItem],
    summary="Lister les antécédents",
)
async def list_antecedents(db: AsyncSession = Depends(get_session)) -> list[ReferenceItem]:
    antecedents = await reference_service.list_antecedents(db)
    return [ReferenceItem.model_validate(item) for item in antecedents]


@router.get(
    "/allergies/",
    response_model=list[ReferenceItem],
    summary="Lister les allergies",
)
async def list_allergies(db: AsyncSession = Depends(get_session)) -> list[ReferenceItem]:
    allergies = await reference_service.list_allergies(db)
    return [ReferenceItem.model_validate(item) for item in allergies]
