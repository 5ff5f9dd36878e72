"""Service metier pour la gestion des patients.

Ce module implemente les operations CRUD sur les patients:
- Lecture (liste, detail avec antecedents/allergies)
- Creation et edition avec remplacement complet des associations
- Suppression (les lignes d'association suivent, pas les donnees de reference)

Chaque operation s'execute dans une seule session et un seul commit.
"""

import logging
from typing import Any

from opentelemetry import trace
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.exc import StaleDataError

from app.core.config import settings
from app.core.database import STORABLE_IDS
from app.models import Patient
from app.schemas.patient import (
    PatientEditView,
    PatientFields,
    PatientForm,
    PatientFormRejection,
    ReferenceItem,
)
from app.services.association_service import reconcile_associations, selected_ids
from app.services.reference_service import list_allergies, list_antecedents

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


async def list_patients(db: AsyncSession) -> list[Patient]:
    """Retourne tous les patients, tries par ID."""
    with tracer.start_as_current_span("list_patients") as span:
        result = await db.execute(select(Patient).order_by(Patient.id))
        patients = list(result.scalars().all())
        span.set_attribute("patients.count", len(patients))
        return patients


async def get_patient(db: AsyncSession, patient_id: int) -> Patient | None:
    """Recupere un patient par son ID, sans ses associations."""
    with tracer.start_as_current_span("get_patient") as span:
        span.set_attribute("patient.id", patient_id)
        if patient_id not in STORABLE_IDS:
            return None
        result = await db.execute(select(Patient).where(Patient.id == patient_id))
        return result.scalar_one_or_none()


async def get_patient_with_associations(db: AsyncSession, patient_id: int) -> Patient | None:
    """
    Recupere un patient avec ses antecedents et allergies charges.

    Les attributs deja presents dans la session sont recharges depuis la base
    (populate_existing), y compris les colonnes generees cote serveur.

    Args:
        db: Session de base de donnees async
        patient_id: ID du patient

    Returns:
        Patient ou None si non trouve
    """
    with tracer.start_as_current_span("get_patient_with_associations") as span:
        span.set_attribute("patient.id", patient_id)
        if patient_id not in STORABLE_IDS:
            span.add_event("ID hors bornes")
            return None

        result = await db.execute(
            select(Patient)
            .where(Patient.id == patient_id)
            .options(selectinload(Patient.antecedents), selectinload(Patient.allergies))
            .execution_options(populate_existing=True)
        )
        patient = result.scalar_one_or_none()
        if not patient:
            span.add_event("Patient non trouve")
        return patient


async def patient_exists(db: AsyncSession, patient_id: int) -> bool:
    """Indique si un patient existe encore en base."""
    if patient_id not in STORABLE_IDS:
        return False
    result = await db.execute(select(Patient.id).where(Patient.id == patient_id))
    return result.scalar_one_or_none() is not None


async def build_edit_view(db: AsyncSession, patient: Patient) -> PatientEditView:
    """
    Construit la vue detail/edition d'un patient charge avec ses associations.

    Returns:
        PatientEditView avec les listes de reference completes et les IDs selectionnes
    """
    return PatientEditView(
        patient=PatientFields.model_validate(patient),
        antecedents=[ReferenceItem.model_validate(a) for a in await list_antecedents(db)],
        allergies=[ReferenceItem.model_validate(a) for a in await list_allergies(db)],
        selected_antecedent_ids=selected_ids(patient, "antecedents"),
        selected_allergie_ids=selected_ids(patient, "allergies"),
    )


async def new_patient_view(db: AsyncSession) -> PatientEditView:
    """Construit le formulaire vide de creation (sexe par defaut configure)."""
    return PatientEditView(
        patient=PatientFields(sex=settings.DEFAULT_SEX),
        antecedents=[ReferenceItem.model_validate(a) for a in await list_antecedents(db)],
        allergies=[ReferenceItem.model_validate(a) for a in await list_allergies(db)],
    )


async def build_form_rejection(
    db: AsyncSession,
    submitted: dict[str, Any],
    error: ValidationError,
) -> PatientFormRejection:
    """Construit la reponse de reaffichage d'un formulaire invalide (saisie conservee)."""
    return PatientFormRejection(
        submitted=submitted,
        errors=PatientFormRejection.field_errors(error),
        antecedents=[ReferenceItem.model_validate(a) for a in await list_antecedents(db)],
        allergies=[ReferenceItem.model_validate(a) for a in await list_allergies(db)],
    )


async def create_patient(
    db: AsyncSession,
    patient_data: PatientForm,
    current_user_id: str,
) -> Patient:
    """
    Cree un nouveau patient avec ses antecedents et allergies.

    Pattern:
    1. Construire le patient depuis les champs scalaires
    2. Reconcilier antecedents et allergies (collections initialement vides)
    3. Inserer le patient et ses associations en un seul commit

    Args:
        db: Session de base de donnees async
        patient_data: Formulaire valide
        current_user_id: ID Keycloak de l'utilisateur createur

    Returns:
        Patient cree, associations chargees
    """
    with tracer.start_as_current_span("create_patient") as span:
        patient = Patient(
            last_name=patient_data.last_name,
            first_name=patient_data.first_name,
            sex=patient_data.sex,
            social_security_number=patient_data.social_security_number,
            created_by=current_user_id,
            updated_by=current_user_id,
        )

        await reconcile_associations(
            db, patient, "antecedents", patient_data.selected_antecedent_ids
        )
        await reconcile_associations(db, patient, "allergies", patient_data.selected_allergie_ids)

        db.add(patient)
        await db.commit()

        span.set_attribute("patient.id", patient.id)
        span.add_event("Patient cree avec succes")
        logger.info(f"Patient {patient.id} cree par {current_user_id}")

        return await get_patient_with_associations(db, patient.id)


async def update_patient(
    db: AsyncSession,
    patient_id: int,
    patient_data: PatientForm,
    current_user_id: str,
) -> Patient | None:
    """
    Met a jour un patient existant.

    Pattern:
    1. Recharger le patient de reference avec ses associations
    2. Remplacer allergies et antecedents par les IDs soumis
    3. Ecraser les champs scalaires
    4. Enregistrer avec verification de version (concurrence optimiste)

    Si l'enregistrement detecte une modification concurrente, le patient est
    considere introuvable s'il a ete supprime entre-temps ; sinon le conflit
    est propage sans nouvelle tentative.

    Args:
        db: Session de base de donnees async
        patient_id: ID du patient a mettre a jour
        patient_data: Formulaire valide
        current_user_id: ID Keycloak de l'utilisateur modificateur

    Returns:
        Patient mis a jour ou None si non trouve

    Raises:
        StaleDataError: Si le patient existe encore mais a ete modifie entre-temps
    """
    with tracer.start_as_current_span("update_patient") as span:
        span.set_attribute("patient.id", patient_id)

        try:
            patient = await get_patient_with_associations(db, patient_id)
            if not patient:
                return None

            # Associations avant les champs scalaires: l'autoflush des requetes
            # de reconciliation ne doit pas emettre l'UPDATE du patient
            await reconcile_associations(
                db, patient, "allergies", patient_data.selected_allergie_ids
            )
            await reconcile_associations(
                db, patient, "antecedents", patient_data.selected_antecedent_ids
            )

            patient.last_name = patient_data.last_name
            patient.first_name = patient_data.first_name
            patient.sex = patient_data.sex
            patient.social_security_number = patient_data.social_security_number
            patient.updated_by = current_user_id

            # UPDATE systematique: la verification de version_id a toujours lieu
            flag_modified(patient, "last_name")
            await db.commit()
        except StaleDataError:
            await db.rollback()
            span.add_event("Conflit de concurrence detecte")
            if not await patient_exists(db, patient_id):
                logger.info(f"Patient {patient_id} supprime pendant l'edition")
                return None
            logger.error(f"Conflit de concurrence non resolu sur le patient {patient_id}")
            raise

        span.add_event("Patient mis a jour avec succes")
        logger.info(f"Patient {patient_id} mis a jour par {current_user_id}")

        # Colonnes generees deja relues par le RETURNING de l'UPDATE (eager_defaults)
        return patient


async def delete_patient(
    db: AsyncSession,
    patient_id: int,
    current_user_id: str,
) -> bool:
    """
    Supprime definitivement un patient.

    Les lignes d'association sont supprimees avec lui ; les antecedents et
    allergies references restent intacts.

    Args:
        db: Session de base de donnees async
        patient_id: ID du patient a supprimer
        current_user_id: ID Keycloak de l'utilisateur

    Returns:
        True si supprime, False si non trouve
    """
    with tracer.start_as_current_span("delete_patient") as span:
        span.set_attribute("patient.id", patient_id)

        patient = await get_patient_with_associations(db, patient_id)
        if not patient:
            return False

        await db.delete(patient)
        await db.commit()

        span.add_event("Patient supprime")
        logger.info(f"Patient {patient_id} supprime par {current_user_id}")

        return True
