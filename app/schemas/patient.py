"""Schémas Pydantic pour Patient.

Ce module définit le formulaire soumis (PatientForm), les vues de lecture
renvoyées aux clients (PatientEditView, PatientResponse, PatientListItem)
et la réponse de rejet d'un formulaire invalide (PatientFormRejection).
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from app.schemas.utils import (
    PatientId,
    PersonName,
    ReferenceId,
    Sex,
    SocialSecurityNumber,
)


class ReferenceItem(BaseModel):
    """Élément d'une liste de référence (antécédent ou allergie)."""

    id: int
    label: str

    model_config = {"from_attributes": True}


class PatientForm(BaseModel):
    """Formulaire patient soumis (création ou édition).

    Les listes d'IDs sélectionnés peuvent être absentes ou nulles : le patient
    n'aura alors aucune association du type concerné.
    """

    id: PatientId | None = Field(
        None, description="ID du patient (obligatoire en édition, ignoré en création)"
    )
    last_name: PersonName = Field(..., description="Nom de famille", examples=["Durand"])
    first_name: PersonName = Field(..., description="Prénom", examples=["Alice"])
    sex: Sex = Field(..., description="Sexe")
    social_security_number: SocialSecurityNumber
    selected_antecedent_ids: list[ReferenceId] | None = Field(
        None, description="IDs des antécédents sélectionnés"
    )
    selected_allergie_ids: list[ReferenceId] | None = Field(
        None, description="IDs des allergies sélectionnées"
    )


class PatientFields(BaseModel):
    """Champs scalaires d'un patient tels qu'affichés dans un formulaire."""

    id: int | None = None
    last_name: str = ""
    first_name: str = ""
    sex: Sex = "male"
    social_security_number: str = ""

    model_config = {"from_attributes": True}


class PatientEditView(BaseModel):
    """Vue détail / formulaire d'un patient.

    Contient le patient, les listes de référence complètes et les IDs
    actuellement sélectionnés.
    """

    patient: PatientFields
    antecedents: list[ReferenceItem] = Field(default_factory=list)
    allergies: list[ReferenceItem] = Field(default_factory=list)
    selected_antecedent_ids: list[int] = Field(default_factory=list)
    selected_allergie_ids: list[int] = Field(default_factory=list)


class FieldError(BaseModel):
    """Erreur de validation rattachée à un champ du formulaire."""

    field: str
    message: str
    type: str


class PatientFormRejection(BaseModel):
    """Réponse 422 : formulaire à réafficher avec la saisie et les erreurs."""

    submitted: dict[str, Any] = Field(..., description="Valeurs soumises, inchangées")
    errors: list[FieldError]
    antecedents: list[ReferenceItem] = Field(default_factory=list)
    allergies: list[ReferenceItem] = Field(default_factory=list)

    @staticmethod
    def field_errors(exc: ValidationError) -> list[FieldError]:
        """Convertit une ValidationError Pydantic en erreurs par champ."""
        return [
            FieldError(
                field=".".join(str(part) for part in error["loc"]) or "__root__",
                message=error["msg"],
                type=error["type"],
            )
            for error in exc.errors()
        ]


class PatientResponse(BaseModel):
    """Schéma de réponse pour un patient (vue de confirmation de suppression)."""

    id: PatientId
    last_name: str
    first_name: str
    sex: Sex
    social_security_number: str
    created_at: datetime
    updated_at: datetime
    created_by: str | None
    updated_by: str | None

    model_config = {"from_attributes": True}


class PatientListItem(BaseModel):
    """Schéma optimisé pour la liste des patients."""

    id: PatientId
    last_name: str
    first_name: str
    sex: Sex
    social_security_number: str

    model_config = {"from_attributes": True}
