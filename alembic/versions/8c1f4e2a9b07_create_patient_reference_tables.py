"""create patients, reference data and association tables

Revision ID: 8c1f4e2a9b07
Revises:
Create Date: 2025-11-04 09:12:31.402118

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8c1f4e2a9b07'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Crée les tables patients, antecedents, allergies et leurs associations.

    Les tables d'association ont une clé primaire composite (pas de doublon)
    et des clés étrangères ON DELETE CASCADE : supprimer un patient supprime
    ses associations sans toucher aux données de référence.
    """
    op.create_table(
        'antecedents',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('label', sa.String(length=255), nullable=False, comment="Libellé de l'antécédent"),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('label'),
    )
    op.create_index(op.f('ix_antecedents_id'), 'antecedents', ['id'], unique=False)

    op.create_table(
        'allergies',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('label', sa.String(length=255), nullable=False, comment="Libellé de l'allergie"),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('label'),
    )
    op.create_index(op.f('ix_allergies_id'), 'allergies', ['id'], unique=False)

    op.create_table(
        'patients',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False, comment='Nom de famille du patient'),
        sa.Column('first_name', sa.String(length=100), nullable=False, comment='Prénom du patient'),
        sa.Column('sex', sa.String(length=10), nullable=False, comment='Sexe (male/female)'),
        sa.Column('social_security_number', sa.String(length=21), nullable=False, comment='Numéro de sécurité sociale'),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='Date de création du dossier'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='Date de dernière modification'),
        sa.Column('created_by', sa.String(length=255), nullable=True, comment='Keycloak user ID du créateur'),
        sa.Column('updated_by', sa.String(length=255), nullable=True, comment='Keycloak user ID du dernier modificateur'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_patients_id'), 'patients', ['id'], unique=False)

    op.create_table(
        'patient_antecedents',
        sa.Column('patient_id', sa.Integer(), nullable=False),
        sa.Column('antecedent_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['antecedent_id'], ['antecedents.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['patient_id'], ['patients.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('patient_id', 'antecedent_id'),
    )

    op.create_table(
        'patient_allergies',
        sa.Column('patient_id', sa.Integer(), nullable=False),
        sa.Column('allergie_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['allergie_id'], ['allergies.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['patient_id'], ['patients.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('patient_id', 'allergie_id'),
    )


def downgrade() -> None:
    """Supprime toutes les tables (perte des données patients)."""
    op.drop_table('patient_allergies')
    op.drop_table('patient_antecedents')
    op.drop_index(op.f('ix_patients_id'), table_name='patients')
    op.drop_table('patients')
    op.drop_index(op.f('ix_allergies_id'), table_name='allergies')
    op.drop_table('allergies')
    op.drop_index(op.f('ix_antecedents_id'), table_name='antecedents')
    op.drop_table('antecedents')
