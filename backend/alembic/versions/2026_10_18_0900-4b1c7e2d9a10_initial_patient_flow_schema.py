"""Initial patient flow schema

Revision ID: 4b1c7e2d9a10
Revises:
Create Date: 2026-10-18 09:00:00.000000+00:00

This migration creates:
1. patients (front-desk registry)
2. episodes (one encounter, version-guarded)
3. outpatient_queue (one row per waiting episode)
4. billing (line-item charges)
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '4b1c7e2d9a10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# JSONB on PostgreSQL, JSON elsewhere
json_type = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP'), comment='Timestamp when record was created'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP'), comment='Timestamp when record was last updated'),
    ]


def upgrade() -> None:
    """Create patient flow tables."""

    # =========================================================================
    # 1. PATIENTS
    # =========================================================================

    op.create_table(
        'patients',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True, comment='Primary key'),
        sa.Column('patient_code', sa.String(40), nullable=False, comment='Clinic patient code (CMH-YYYYMM<initials><seq>)'),
        sa.Column('first_name', sa.String(100), nullable=False, comment='Given name (PII)'),
        sa.Column('middle_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=False, comment='Surname (PII)'),
        sa.Column('national_id', sa.String(50), nullable=True),
        sa.Column('date_of_birth', sa.Date(), nullable=False, comment='Date of birth (PII)'),
        sa.Column('gender', sa.String(20), nullable=False),
        sa.Column('blood_type', sa.String(5), nullable=True),
        sa.Column('phone', sa.String(50), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('address', sa.Text(), nullable=False),
        sa.Column('emergency_contact_name', sa.String(200), nullable=False),
        sa.Column('emergency_contact_phone', sa.String(50), nullable=False),
        sa.Column('emergency_contact_relationship', sa.String(50), nullable=True),
        sa.Column('occupation', sa.String(100), nullable=True),
        sa.Column('insurance_provider', sa.String(100), nullable=True),
        sa.Column('policy_number', sa.String(100), nullable=True),
        sa.Column('medical_history', sa.Text(), nullable=True),
        sa.Column('allergies', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true(), comment='Whether patient record is active'),
        sa.Column('registration_date', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP'), comment='When the patient was first registered'),
        *_timestamps(),
    )
    op.create_index('ix_patients_patient_code', 'patients', ['patient_code'], unique=True)
    op.create_index('ix_patients_national_id', 'patients', ['national_id'])
    op.create_index('ix_patients_registration_date', 'patients', ['registration_date'])

    # =========================================================================
    # 2. EPISODES
    # =========================================================================

    op.create_table(
        'episodes',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True, comment='Primary key'),
        sa.Column('episode_number', sa.String(8), nullable=False, comment='Type prefix + last 6 digits of epoch milliseconds'),
        sa.Column('patient_id', sa.Integer(), sa.ForeignKey('patients.id', ondelete='RESTRICT'), nullable=False, comment='Patient this episode belongs to'),
        sa.Column(
            'episode_type',
            sa.Enum('outpatient', 'inpatient', 'emergency', name='episode_type', native_enum=False, create_constraint=True),
            nullable=False,
        ),
        sa.Column(
            'status',
            sa.Enum('registered', 'in-queue', 'in-consultation', 'treatment', 'completed', name='episode_status', native_enum=False, create_constraint=True),
            nullable=False,
        ),
        sa.Column('registration_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('consultation_fee', sa.Numeric(10, 2), nullable=False),
        sa.Column('fees_paid', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('doctor_id', sa.Integer(), nullable=True, comment='Clinician who called the patient in'),
        sa.Column('consultation_notes', sa.Text(), nullable=True),
        sa.Column('discharge_notes', sa.Text(), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('prescriptions', json_type, nullable=False),
        sa.Column('lab_tests', json_type, nullable=False),
        sa.Column('services', json_type, nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_episodes_episode_number', 'episodes', ['episode_number'], unique=True)
    op.create_index('ix_episodes_patient_id', 'episodes', ['patient_id'])
    op.create_index('idx_episodes_patient_status', 'episodes', ['patient_id', 'status'])

    # =========================================================================
    # 3. OUTPATIENT QUEUE
    # =========================================================================

    op.create_table(
        'outpatient_queue',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('episode_number', sa.String(8), sa.ForeignKey('episodes.episode_number', ondelete='CASCADE'), nullable=False, unique=True, comment='Queued episode'),
        sa.Column('patient_id', sa.Integer(), sa.ForeignKey('patients.id', ondelete='CASCADE'), nullable=False),
        sa.Column('queued_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            'priority',
            sa.Enum('high', 'normal', name='queue_priority', native_enum=False, create_constraint=True),
            nullable=False,
        ),
        sa.Column('status', sa.String(20), nullable=False, server_default='waiting'),
    )
    op.create_index('ix_outpatient_queue_patient_id', 'outpatient_queue', ['patient_id'])
    op.create_index('ix_outpatient_queue_queued_at', 'outpatient_queue', ['queued_at'])

    # =========================================================================
    # 4. BILLING
    # =========================================================================

    op.create_table(
        'billing',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True, comment='Primary key'),
        sa.Column('bill_id', sa.String(30), nullable=True, unique=True, comment='Human-readable bill number'),
        sa.Column('patient_id', sa.Integer(), sa.ForeignKey('patients.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('episode_number', sa.String(8), nullable=True, comment='Episode that generated this charge'),
        sa.Column('service_type', sa.String(100), nullable=False),
        sa.Column('service_description', sa.String(500), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('discount', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('total_amount', sa.Numeric(10, 2), nullable=False),
        sa.Column(
            'payment_status',
            sa.Enum('pending', 'paid', 'partial', 'cancelled', name='payment_status', native_enum=False, create_constraint=True),
            nullable=False,
        ),
        sa.Column('payment_method', sa.String(50), nullable=True, comment='cash, card, insurance, bank_transfer, mobile_money'),
        sa.Column('transaction_reference', sa.String(100), nullable=True),
        sa.Column('payment_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('insurance_claimed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('insurance_amount', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_billing_patient_id', 'billing', ['patient_id'])
    op.create_index('ix_billing_episode_number', 'billing', ['episode_number'])
    op.create_index('idx_billing_patient_status', 'billing', ['patient_id', 'payment_status'])


def downgrade() -> None:
    """Drop patient flow tables."""
    op.drop_table('billing')
    op.drop_table('outpatient_queue')
    op.drop_table('episodes')
    op.drop_table('patients')
