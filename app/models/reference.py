"""Données de référence liables à un patient.

Les antécédents et allergies sont pré-chargés (voir scripts/seed_reference_data.py)
et ne sont jamais créés ni modifiés par le workflow patient.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class Antecedent(Base):
    """Antécédent médical (historique) sélectionnable pour un patient."""

    __tablename__ = "antecedents"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    label: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, comment="Libellé de l'antécédent"
    )

    def __repr__(self) -> str:
        return f"<Antecedent(id={self.id}, label='{self.label}')>"


class Allergie(Base):
    """Allergie sélectionnable pour un patient."""

    __tablename__ = "allergies"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    label: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, comment="Libellé de l'allergie"
    )

    def __repr__(self) -> str:
        return f"<Allergie(id={self.id}, label='{self.label}')>"
