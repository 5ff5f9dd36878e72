"""Endpoints API pour la gestion des patients.

Ce module définit le workflow complet d'un dossier patient : liste, détail,
formulaire de création, formulaire d'édition et suppression avec
confirmation. Les soumissions réussies redirigent (303) vers la liste.

Permissions :
- Lecture (liste, détail) : tout utilisateur authentifié
- Création, édition, suppression (formulaire et soumission) : admin ou professional
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.exceptions import PatientNotFoundError
from app.core.security import User, get_current_user, require_patient_editor
from app.schemas.patient import (
    PatientEditView,
    PatientForm,
    PatientFormRejection,
    PatientListItem,
    PatientResponse,
)
from app.services import patient_service

logger = logging.getLogger(__name__)

router = APIRouter()

FORM_REJECTED = {
    status.HTTP_422_UNPROCESSABLE_ENTITY: {
        "model": PatientFormRejection,
        "description": "Formulaire invalide, à réafficher avec la saisie et les erreurs",
    }
}


def _redirect_to_list(request: Request) -> RedirectResponse:
    return RedirectResponse(
        str(request.url_for("list_patients")), status_code=status.HTTP_303_SEE_OTHER
    )


def _submitted_id(payload: dict[str, Any]) -> int | None:
    """ID du patient porté par le formulaire soumis, s'il s'agit d'un entier JSON."""
    submitted = payload.get("id")
    # bool est une sous-classe d'int ; 5.7 ou "5" ne désignent aucun patient
    if isinstance(submitted, bool) or not isinstance(submitted, int):
        return None
    return submitted


async def _reject_form(
    db: AsyncSession, payload: dict[str, Any], error: ValidationError
) -> JSONResponse:
    rejection = await patient_service.build_form_rejection(db, payload, error)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=rejection.model_dump(mode="json"),
    )


@router.get(
    "/",
    response_model=list[PatientListItem],
    name="list_patients",
    summary="Lister les patients",
    dependencies=[Depends(get_current_user)],
)
async def list_patients(db: AsyncSession = Depends(get_session)) -> list[PatientListItem]:
    """Liste tous les patients."""
    patients = await patient_service.list_patients(db)
    return [PatientListItem.model_validate(patient) for patient in patients]


@router.get(
    "/new",
    response_model=PatientEditView,
    summary="Formulaire de création",
    description="Formulaire vide avec les listes d'antécédents et d'allergies",
    dependencies=[Depends(require_patient_editor)],
)
async def new_patient_form(db: AsyncSession = Depends(get_session)) -> PatientEditView:
    return await patient_service.new_patient_view(db)


@router.post(
    "/",
    status_code=status.HTTP_303_SEE_OTHER,
    summary="Créer un patient",
    responses=FORM_REJECTED,
)
async def create_patient(
    request: Request,
    payload: dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_patient_editor),
):
    """
    Crée un patient avec ses antécédents et allergies sélectionnés.

    Les IDs d'antécédents/allergies inexistants sont ignorés.
    """
    try:
        form = PatientForm.model_validate(payload)
    except ValidationError as e:
        logger.info(f"Formulaire de création rejeté ({e.error_count()} erreur(s))")
        return await _reject_form(db, payload, e)

    await patient_service.create_patient(
        db=db, patient_data=form, current_user_id=current_user.user_id
    )
    return _redirect_to_list(request)


@router.get(
    "/{patient_id}",
    response_model=PatientEditView,
    summary="Détail d'un patient",
    description="Patient, listes de référence et antécédents/allergies sélectionnés",
    dependencies=[Depends(get_current_user)],
)
async def get_patient_details(
    patient_id: int,
    db: AsyncSession = Depends(get_session),
) -> PatientEditView:
    patient = await patient_service.get_patient_with_associations(db, patient_id)
    if not patient:
        raise PatientNotFoundError(patient_id)

    return await patient_service.build_edit_view(db, patient)


@router.get(
    "/{patient_id}/edit",
    response_model=PatientEditView,
    summary="Formulaire d'édition",
    dependencies=[Depends(require_patient_editor)],
)
async def edit_patient_form(
    patient_id: int,
    db: AsyncSession = Depends(get_session),
) -> PatientEditView:
    patient = await patient_service.get_patient_with_associations(db, patient_id)
    if not patient:
        raise PatientNotFoundError(patient_id)

    return await patient_service.build_edit_view(db, patient)


@router.put(
    "/{patient_id}",
    status_code=status.HTTP_303_SEE_OTHER,
    summary="Mettre à jour un patient",
    description=(
        "Écrase les champs du patient et remplace entièrement ses antécédents et allergies"
    ),
    responses=FORM_REJECTED,
)
async def update_patient(
    request: Request,
    patient_id: int,
    payload: dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_patient_editor),
):
    """
    Met à jour un patient existant.

    404 si l'ID du chemin diffère de l'ID soumis, ou si le patient n'existe
    pas (ou plus, en cas de suppression concurrente).
    """
    if _submitted_id(payload) != patient_id:
        raise PatientNotFoundError(patient_id)

    try:
        form = PatientForm.model_validate(payload)
    except ValidationError as e:
        logger.info(f"Formulaire d'édition du patient {patient_id} rejeté")
        return await _reject_form(db, payload, e)

    updated = await patient_service.update_patient(
        db=db,
        patient_id=patient_id,
        patient_data=form,
        current_user_id=current_user.user_id,
    )
    if not updated:
        raise PatientNotFoundError(patient_id)

    return _redirect_to_list(request)


@router.get(
    "/{patient_id}/delete",
    response_model=PatientResponse,
    summary="Confirmation de suppression",
    dependencies=[Depends(require_patient_editor)],
)
async def confirm_delete_patient(
    patient_id: int,
    db: AsyncSession = Depends(get_session),
) -> PatientResponse:
    patient = await patient_service.get_patient(db, patient_id)
    if not patient:
        raise PatientNotFoundError(patient_id)

    return PatientResponse.model_validate(patient)


@router.delete(
    "/{patient_id}",
    status_code=status.HTTP_303_SEE_OTHER,
    summary="Supprimer un patient",
    description="Supprime le patient et ses associations (les données de référence restent)",
)
async def delete_patient(
    request: Request,
    patient_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_patient_editor),
):
    deleted = await patient_service.delete_patient(
        db=db,
        patient_id=patient_id,
        current_user_id=current_user.user_id,
    )
    if not deleted:
        raise PatientNotFoundError(patient_id)

    return _redirect_to_list(request)
