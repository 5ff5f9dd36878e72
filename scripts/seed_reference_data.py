#!/usr/bin/env python3
"""Script de chargement des données de référence (antécédents et allergies).

Les patients ne peuvent être associés qu'à des antécédents et allergies
existants : ce script alimente ces deux tables. Il est idempotent, les
libellés déjà présents sont ignorés.

Usage:
    # Listes par défaut
    python scripts/seed_reference_data.py

    # Depuis un CSV (colonnes: type,label ; type = antecedent | allergie)
    python scripts/seed_reference_data.py --csv reference.csv

    # Mode dry-run (aucune écriture)
    python scripts/seed_reference_data.py --dry-run

Prérequis:
    - Tables créées (alembic upgrade head)
    - Variable d'environnement SQLALCHEMY_DATABASE_URI configurée
"""

import argparse
import asyncio
import csv
import logging
import sys
from pathlib import Path

# Ajouter le répertoire parent au path pour imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.core.database import async_session_maker, engine
from app.models import Allergie, Antecedent
from app.services.reference_service import ensure_reference_labels

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

DEFAULT_ANTECEDENTS = [
    "Asthme",
    "Diabète de type 1",
    "Diabète de type 2",
    "Hypertension artérielle",
    "Infarctus du myocarde",
    "Accident vasculaire cérébral",
    "Insuffisance rénale chronique",
    "Épilepsie",
]

DEFAULT_ALLERGIES = [
    "Pénicilline",
    "Aspirine",
    "Arachide",
    "Latex",
    "Pollen",
    "Acariens",
    "Fruits de mer",
    "Lactose",
]


def read_csv(path: Path) -> tuple[list[str], list[str]]:
    """Lit un CSV `type,label` et retourne (antécédents, allergies)."""
    antecedents: list[str] = []
    allergies: list[str] = []
    with path.open(newline="", encoding="utf-8") as f:
        for line_number, row in enumerate(csv.DictReader(f), start=2):
            kind = (row.get("type") or "").strip().lower()
            label = (row.get("label") or "").strip()
            if kind == "antecedent":
                antecedents.append(label)
            elif kind == "allergie":
                allergies.append(label)
            else:
                logger.warning(f"Ligne {line_number} ignorée: type inconnu '{kind}'")
    return antecedents, allergies


async def main(csv_path: Path | None, dry_run: bool) -> int:
    """Point d'entrée principal."""
    if csv_path:
        antecedents, allergies = read_csv(csv_path)
    else:
        antecedents, allergies = DEFAULT_ANTECEDENTS, DEFAULT_ALLERGIES

    async with async_session_maker() as session:
        added_antecedents = await ensure_reference_labels(session, Antecedent, antecedents)
        added_allergies = await ensure_reference_labels(session, Allergie, allergies)

        if dry_run:
            await session.rollback()
            logger.info("Mode DRY-RUN: aucune écriture")
        else:
            await session.commit()

    await engine.dispose()

    logger.info(f"Antécédents ajoutés: {added_antecedents}")
    logger.info(f"Allergies ajoutées: {added_allergies}")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Charge les antécédents et allergies de référence")
    parser.add_argument("--csv", type=Path, default=None, help="Fichier CSV type,label")
    parser.add_argument("--dry-run", action="store_true", help="Simule sans écrire")
    args = parser.parse_args()

    sys.exit(asyncio.run(main(args.csv, args.dry_run)))
