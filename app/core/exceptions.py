"""
Exceptions HTTP du service patient-records.

Les services renvoient None/False lorsqu'un patient est introuvable ; les
endpoints traduisent cette absence en PatientNotFoundError (404).
"""

from fastapi import HTTPException, status


class PatientNotFoundError(HTTPException):
    """
    Exception levée lorsqu'un patient demandé n'existe pas.

    Couvre aussi les cas où l'ID du chemin ne correspond pas à l'ID soumis,
    et où le patient a été supprimé entre le chargement et l'enregistrement.

    Example:
        ```python
        patient = await patient_service.get_patient(db, patient_id)
        if not patient:
            raise PatientNotFoundError(patient_id)
        ```
    """

    def __init__(self, patient_id: int):
        self.patient_id = patient_id
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Patient avec ID {patient_id} non trouvé",
        )


__all__ = ["PatientNotFoundError"]
