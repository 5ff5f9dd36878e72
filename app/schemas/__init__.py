"""Schemas Pydantic pour validation des donnees."""

from app.schemas.patient import (
    FieldError,
    PatientEditView,
    PatientFields,
    PatientForm,
    PatientFormRejection,
    PatientListItem,
    PatientResponse,
    ReferenceItem,
)

__all__ = [
    "FieldError",
    "PatientEditView",
    "PatientFields",
    "PatientForm",
    "PatientFormRejection",
    "PatientListItem",
    "PatientResponse",
    "ReferenceItem",
]
