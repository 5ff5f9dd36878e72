"""Annotations Pydantic réutilisables pour validation.

Ce module centralise les types annotés pour assurer la cohérence
de la validation à travers tous les schémas Pydantic du service.
"""

from typing import Annotated, Literal

from pydantic import Field, StringConstraints

# Chaînes avec contraintes
NonEmptyStr = Annotated[str, StringConstraints(min_length=1, strip_whitespace=True)]
PersonName = Annotated[
    str,
    StringConstraints(min_length=1, max_length=100, strip_whitespace=True),
]

# Identifiants
PatientId = Annotated[int, Field(gt=0, description="ID unique du patient")]
ReferenceId = Annotated[int, Field(description="ID d'un antécédent ou d'une allergie")]

# Sexe (valeurs légalement reconnues)
Sex = Literal["male", "female"]

# Numéro de sécurité sociale (chiffres, 2A/2B pour la Corse, espaces tolérés)
SocialSecurityNumber = Annotated[
    str,
    StringConstraints(
        min_length=1,
        max_length=21,
        pattern=r"^[0-9ABab ]+$",
        strip_whitespace=True,
    ),
    Field(
        description="Numéro de sécurité sociale",
        examples=["1 85 05 78 006 084 36"],
    ),
]
