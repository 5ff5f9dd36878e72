"""Lecture des listes de référence (antécédents, allergies)."""

from opentelemetry import trace
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Allergie, Antecedent

tracer = trace.get_tracer(__name__)


async def list_antecedents(db: AsyncSession) -> list[Antecedent]:
    """Retourne tous les antécédents, triés par libellé."""
    with tracer.start_as_current_span("list_antecedents"):
        result = await db.execute(select(Antecedent).order_by(Antecedent.label))
        return list(result.scalars().all())


async def list_allergies(db: AsyncSession) -> list[Allergie]:
    """Retourne toutes les allergies, triées par libellé."""
    with tracer.start_as_current_span("list_allergies"):
        result = await db.execute(select(Allergie).order_by(Allergie.label))
        return list(result.scalars().all())


async def ensure_reference_labels(
    db: AsyncSession,
    model: type[Antecedent] | type[Allergie],
    labels: list[str],
) -> int:
    """
    Insere les libelles absents de la table de reference `model`.

    Idempotent: les libelles deja presents (ou repetes dans `labels`) sont ignores.
    Aucun commit n'est effectue.

    Returns:
        Nombre de lignes ajoutees
    """
    with tracer.start_as_current_span("ensure_reference_labels") as span:
        span.set_attribute("reference.table", model.__tablename__)
        wanted = list(dict.fromkeys(label.strip() for label in labels if label.strip()))
        if not wanted:
            return 0

        result = await db.execute(select(model.label).where(model.label.in_(wanted)))
        existing = set(result.scalars().all())

        missing = [label for label in wanted if label not in existing]
        db.add_all([model(label=label) for label in missing])
        span.set_attribute("reference.added", len(missing))
        return len(missing)
