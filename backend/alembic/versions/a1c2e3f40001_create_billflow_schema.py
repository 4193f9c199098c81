"""create_billflow_schema

Revision ID: a1c2e3f40001
Revises:
Create Date: 2026-10-18 09:12:40.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = 'a1c2e3f40001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id_column():
    return sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'employees',
        _id_column(),
        sa.Column('employee_code', sa.String(50), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('designation', sa.String(100), nullable=True),
        sa.Column('section', sa.String(100), nullable=True),
        sa.Column('mobile_number', sa.String(50), nullable=True),
        sa.Column('is_admin', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_employees_employee_code', 'employees', ['employee_code'], unique=True)
    op.create_index('ix_employees_email', 'employees', ['email'], unique=True)

    op.create_table(
        'vendors',
        _id_column(),
        sa.Column('vendor_code', sa.String(50), nullable=False),
        sa.Column('vendor_name', sa.String(255), nullable=False),
        sa.Column('vendor_short_name', sa.String(100), nullable=True),
        sa.Column('vendor_type', sa.String(20), nullable=True),
        sa.Column('contact_person_name', sa.String(255), nullable=True),
        sa.Column('mobile_number', sa.String(50), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('office_address', sa.Text(), nullable=True),
        sa.Column('country', sa.String(100), nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('trade_license_number', sa.String(100), nullable=True),
        sa.Column('trade_license_expiry_date', sa.Date(), nullable=True),
        sa.Column('tin_number', sa.String(100), nullable=True),
        sa.Column('vat_bin_number', sa.String(100), nullable=True),
        sa.Column('bank_name', sa.String(255), nullable=True),
        sa.Column('account_number', sa.String(100), nullable=True),
        sa.Column('routing_number', sa.String(100), nullable=True),
        sa.Column('payment_method', sa.String(20), nullable=True),
        sa.Column('payment_terms', sa.String(100), nullable=True),
        sa.Column('credit_limit', sa.Numeric(18, 2), nullable=True),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('vat_applicable', sa.Boolean(), nullable=False),
        sa.Column('tax_deduction_applicable', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_vendors_vendor_code', 'vendors', ['vendor_code'], unique=True)
    op.create_index('ix_vendors_vendor_name', 'vendors', ['vendor_name'])

    op.create_table(
        'bill_types',
        _id_column(),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('code', sa.String(20), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_bill_types_code', 'bill_types', ['code'], unique=True)

    op.create_table(
        'approval_flow_steps',
        _id_column(),
        sa.Column('bill_type_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('step_order', sa.Integer(), nullable=False),
        sa.Column('status_name', sa.String(100), nullable=False),
        sa.ForeignKeyConstraint(['bill_type_id'], ['bill_types.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_approval_flow_steps_bill_type_id', 'approval_flow_steps', ['bill_type_id'])

    op.create_table(
        'approval_rules',
        _id_column(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('min_amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('max_amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('effective_date', sa.Date(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'approver_levels',
        _id_column(),
        sa.Column('rule_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('approver_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('escalation_timeout_days', sa.Integer(), nullable=True),
        sa.Column('alternative_approvers', sa.JSON(), server_default='[]', nullable=False),
        sa.ForeignKeyConstraint(['rule_id'], ['approval_rules.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['approver_id'], ['employees.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_approver_levels_rule_id', 'approver_levels', ['rule_id'])
    op.create_index('ix_approver_levels_approver_id', 'approver_levels', ['approver_id'])

    op.create_table(
        'bills',
        _id_column(),
        sa.Column('bill_number', sa.String(50), nullable=False),
        sa.Column('bill_reference_number', sa.String(100), nullable=True),
        sa.Column('vendor_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('bill_type_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('bill_date', sa.Date(), nullable=True),
        sa.Column('bill_received_date', sa.Date(), nullable=True),
        sa.Column('entry_date', sa.Date(), server_default=sa.text('CURRENT_DATE'), nullable=False),
        sa.Column('entry_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('vat_applicable', sa.Boolean(), nullable=False),
        sa.Column('vat_percentage', sa.Numeric(5, 2), nullable=False),
        sa.Column('vat_amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('tds_applicable', sa.Boolean(), nullable=False),
        sa.Column('tds_percentage', sa.Numeric(5, 2), nullable=False),
        sa.Column('tds_amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('other_charges', sa.Numeric(18, 2), nullable=False),
        sa.Column('deduction_amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('total_payable_amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('billing_period_from', sa.Date(), nullable=True),
        sa.Column('billing_period_to', sa.Date(), nullable=True),
        sa.Column('po_number', sa.String(100), nullable=True),
        sa.Column('wo_number', sa.String(100), nullable=True),
        sa.Column('grn_number', sa.String(100), nullable=True),
        sa.Column('invoice_number', sa.String(100), nullable=True),
        sa.Column('invoice_date', sa.Date(), nullable=True),
        sa.Column('department_name', sa.String(100), nullable=True),
        sa.Column('cost_center', sa.String(100), nullable=True),
        sa.Column('project', sa.String(100), nullable=True),
        sa.Column('budget_head', sa.String(100), nullable=True),
        sa.Column('approval_status', sa.String(20), nullable=False),
        sa.Column('current_approver_id', postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendors.id']),
        sa.ForeignKeyConstraint(['bill_type_id'], ['bill_types.id']),
        sa.ForeignKeyConstraint(['entry_by'], ['employees.id']),
        sa.ForeignKeyConstraint(['current_approver_id'], ['employees.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_bills_bill_number', 'bills', ['bill_number'], unique=True)
    op.create_index('ix_bills_vendor_id', 'bills', ['vendor_id'])
    op.create_index('ix_bills_bill_type_id', 'bills', ['bill_type_id'])
    op.create_index('ix_bills_approval_status', 'bills', ['approval_status'])
    op.create_index('ix_bills_current_approver_id', 'bills', ['current_approver_id'])

    op.create_table(
        'bill_items',
        _id_column(),
        sa.Column('bill_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('line_number', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('category', sa.String(50), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('unit_of_measure', sa.String(20), nullable=True),
        sa.Column('quantity', sa.Numeric(18, 4), nullable=False),
        sa.Column('unit_price', sa.Numeric(18, 4), nullable=False),
        sa.Column('gross_amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('discount_amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('net_amount', sa.Numeric(18, 2), nullable=False),
        sa.ForeignKeyConstraint(['bill_id'], ['bills.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_bill_items_bill_id', 'bill_items', ['bill_id'])

    op.create_table(
        'bill_approval_actions',
        _id_column(),
        sa.Column('bill_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('approver_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('level', sa.Integer(), nullable=True),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['bill_id'], ['bills.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['approver_id'], ['employees.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_bill_approval_actions_bill_id', 'bill_approval_actions', ['bill_id'])
    op.create_index('ix_bill_approval_actions_approver_id', 'bill_approval_actions', ['approver_id'])

    op.create_table(
        'audit_logs',
        _id_column(),
        sa.Column('actor_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('actor_email', sa.String(255), nullable=True),
        sa.Column('action', sa.String(100), nullable=False),
        sa.Column('entity_type', sa.String(100), nullable=False),
        sa.Column('entity_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('before_state', sa.Text(), nullable=True),
        sa.Column('after_state', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['actor_id'], ['employees.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_entity_type', 'audit_logs', ['entity_type'])
    op.create_index('ix_audit_logs_entity_id', 'audit_logs', ['entity_id'])


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_table('bill_approval_actions')
    op.drop_table('bill_items')
    op.drop_table('bills')
    op.drop_table('approver_levels')
    op.drop_table('approval_rules')
    op.drop_table('approval_flow_steps')
    op.drop_table('bill_types')
    op.drop_table('vendors')
    op.drop_table('employees')
