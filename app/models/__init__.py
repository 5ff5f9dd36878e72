# Modèles SQLAlchemy pour patient-records
#
# - Patient: dossier patient (+ tables d'association patient_antecedents, patient_allergies)
# - Antecedent, Allergie: données de référence en lecture seule

from .patient import Patient, patient_allergies, patient_antecedents
from .reference import Allergie, Antecedent

__all__ = [
    "Allergie",
    "Antecedent",
    "Patient",
    "patient_allergies",
    "patient_antecedents",
]
