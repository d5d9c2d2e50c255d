"""Inspection records and dispute index

Revision ID: 001_inspection_records
Revises:
Create Date: 2026-10-18

The aggregate is stored as a JSONB snapshot; scalar columns mirror it for
querying and ``version`` guards every write.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_inspection_records'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

INSPECTION_TYPES = ('PRE_RENTAL', 'POST_RENTAL', 'DAMAGE_ASSESSMENT', 'MAINTENANCE_CHECK', 'QUALITY_VERIFICATION')
INSPECTION_STATUSES = (
    'CREATED', 'PRE_PENDING', 'PRE_SUBMITTED', 'PRE_ACCEPTED', 'PRE_DISCREPANCY', 'RENTAL_ACTIVE',
    'POST_ELIGIBLE', 'POST_SUBMITTED', 'POST_ACCEPTED', 'POST_DISPUTED', 'CLOSED',
)
PAYMENT_STATUSES = ('PENDING_PAYMENT', 'PAID', 'FAILED')
DISPUTE_PHASES = ('PRE_RENTAL', 'POST_RENTAL')
DISPUTE_TYPES = (
    'DAMAGE_ASSESSMENT', 'CONDITION_DISAGREEMENT', 'COST_DISPUTE', 'PROCEDURE_VIOLATION', 'OTHER',
)
DISPUTE_STATUSES = ('PENDING', 'UNDER_REVIEW', 'RESOLVED', 'REJECTED')


def upgrade() -> None:
    # === INSPECTION RECORDS ===
    op.create_table(
        'inspection_records',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('booking_id', sa.String(255), nullable=False, index=True),
        sa.Column('product_id', sa.String(255), nullable=False, index=True),
        sa.Column('owner_id', sa.String(128), nullable=False, index=True),
        sa.Column('renter_id', sa.String(128), nullable=False, index=True),
        sa.Column('inspector_id', sa.String(128), nullable=True),
        sa.Column('inspection_type', sa.Enum(*INSPECTION_TYPES, name='inspectiontype'), nullable=False),
        sa.Column('status', sa.Enum(*INSPECTION_STATUSES, name='inspectionstatus'), nullable=False, index=True),
        sa.Column('is_third_party_inspection', sa.Boolean(), default=False),
        sa.Column('payment_status', sa.Enum(*PAYMENT_STATUSES, name='paymentstatus'), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('snapshot', postgresql.JSONB(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )

    # === DISPUTE INDEX ===
    op.create_table(
        'inspection_disputes',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('inspection_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('inspection_records.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('phase', sa.Enum(*DISPUTE_PHASES, name='disputephase'), nullable=False),
        sa.Column('dispute_type', sa.Enum(*DISPUTE_TYPES, name='disputetype'), nullable=False),
        sa.Column('status', sa.Enum(*DISPUTE_STATUSES, name='disputestatus'), nullable=False, index=True),
        sa.Column('raised_by', sa.String(128), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
    )


def downgrade() -> None:
    op.drop_table('inspection_disputes')
    op.drop_table('inspection_records')
    for enum_name in (
        'disputestatus', 'disputetype', 'disputephase', 'paymentstatus', 'inspectionstatus', 'inspectiontype',
    ):
        op.execute(f"DROP TYPE IF EXISTS {enum_name}")
