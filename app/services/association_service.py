"""Réconciliation des associations patient ↔ données de référence.

Une édition remplace l'ensemble des associations d'un type (antécédents ou
allergies) par exactement l'ensemble soumis : pas de diff incrémental.
"""

import logging
from collections.abc import Iterable
from typing import Literal

from opentelemetry import trace
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import STORABLE_IDS
from app.models import Allergie, Antecedent, Patient

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

Relation = Literal["antecedents", "allergies"]

# Relation du patient -> modèle de référence ciblé
REFERENCE_MODELS: dict[str, type[Antecedent] | type[Allergie]] = {
    "antecedents": Antecedent,
    "allergies": Allergie,
}


async def reconcile_associations(
    db: AsyncSession,
    patient: Patient,
    relation: Relation,
    selected_ids: Iterable[int] | None,
) -> list[Antecedent] | list[Allergie]:
    """
    Remplace les associations `relation` du patient par les IDs soumis.

    Pattern:
    1. Vider la collection courante
    2. Charger les entités de référence dont l'ID est soumis
       (IDs inconnus ignorés, doublons fusionnés)
    3. Affecter la collection résultante au patient

    Aucun commit n'est effectué : l'appelant enregistre le patient une fois
    les deux types d'associations réconciliés. L'opération est idempotente.

    Args:
        db: Session de base de donnees async
        patient: Patient transient ou chargé avec la collection `relation`
        relation: "antecedents" ou "allergies"
        selected_ids: IDs sélectionnés (None ou vide = aucune association)

    Returns:
        La nouvelle collection du patient
    """
    model = REFERENCE_MODELS[relation]
    with tracer.start_as_current_span("reconcile_associations") as span:
        span.set_attribute("association.relation", relation)

        collection = getattr(patient, relation)
        collection.clear()

        unique_ids = list(dict.fromkeys(selected_ids or []))
        span.set_attribute("association.requested", len(unique_ids))

        # Un ID hors des bornes de la colonne ne peut designer aucune ligne
        queried_ids = [item_id for item_id in unique_ids if item_id in STORABLE_IDS]
        if not queried_ids:
            if unique_ids:
                logger.debug(f"IDs {relation} ignorés (inexistants): {sorted(unique_ids)}")
            return collection

        result = await db.execute(select(model).where(model.id.in_(queried_ids)))
        found = result.scalars().unique().all()

        setattr(patient, relation, list(found))
        span.set_attribute("association.found", len(found))

        ignored = set(unique_ids) - {item.id for item in found}
        if ignored:
            logger.debug(f"IDs {relation} ignorés (inexistants): {sorted(ignored)}")

        return getattr(patient, relation)


def selected_ids(patient: Patient, relation: Relation) -> list[int]:
    """Retourne les IDs actuellement associés au patient pour `relation`."""
    return [item.id for item in getattr(patient, relation)]
