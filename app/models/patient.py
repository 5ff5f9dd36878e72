"""Modèle de données Patient.

Ce module définit le modèle SQLAlchemy des patients et les deux tables
d'association many-to-many vers les antécédents et les allergies.
"""

from datetime import datetime
from typing import Literal

from sqlalchemy import Column, DateTime, ForeignKey, String, Table, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.reference import Allergie, Antecedent

# Tables d'association: la clé primaire composite interdit les doublons
patient_antecedents = Table(
    "patient_antecedents",
    Base.metadata,
    Column(
        "patient_id",
        ForeignKey("patients.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "antecedent_id",
        ForeignKey("antecedents.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)

patient_allergies = Table(
    "patient_allergies",
    Base.metadata,
    Column(
        "patient_id",
        ForeignKey("patients.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "allergie_id",
        ForeignKey("allergies.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Patient(Base):
    """
    Dossier patient.

    Champs clés :
    - Identité (nom, prénom, sexe, numéro de sécurité sociale)
    - Antécédents et allergies (associations remplacées en bloc à chaque édition)
    - version_id : jeton de concurrence optimiste, vérifié à chaque UPDATE

    Le patient possède ses lignes d'association mais pas les données de
    référence qu'elles désignent.
    """

    __tablename__ = "patients"

    # Identifiants
    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    # Identité
    last_name: Mapped[str] = mapped_column(
        String(100), nullable=False, comment="Nom de famille du patient"
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, comment="Prénom du patient")
    sex: Mapped[Literal["male", "female"]] = mapped_column(
        String(10), nullable=False, comment="Sexe (male/female)"
    )
    social_security_number: Mapped[str] = mapped_column(
        String(21), nullable=False, comment="Numéro de sécurité sociale"
    )

    # Concurrence optimiste
    version_id: Mapped[int] = mapped_column(nullable=False)

    # Métadonnées
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        comment="Date de création du dossier",
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
        comment="Date de dernière modification",
    )
    created_by: Mapped[str | None] = mapped_column(
        String(255), nullable=True, comment="Keycloak user ID du créateur"
    )
    updated_by: Mapped[str | None] = mapped_column(
        String(255), nullable=True, comment="Keycloak user ID du dernier modificateur"
    )

    # Associations
    antecedents: Mapped[list[Antecedent]] = relationship(secondary=patient_antecedents)
    allergies: Mapped[list[Allergie]] = relationship(secondary=patient_allergies)

    # eager_defaults: updated_at et version_id relus par RETURNING a chaque flush
    __mapper_args__ = {"version_id_col": version_id, "eager_defaults": True}

    def __repr__(self) -> str:
        """Représentation string du patient."""
        return f"<Patient(id={self.id}, name='{self.first_name} {self.last_name}')>"
