"""Recurring billing scheduler schema

Revision ID: 20261019_0900_recurring_billing_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

Creates the tables read and written by the billing jobs:
- tenants, companies, customers, tenant_holidays
- recurring_invoice_templates, recurring_invoice_lines
- invoices, invoice_line_items, invoice_activities
- notifications, weekly_reports
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '20261019_0900_recurring_billing_schema'
down_revision = None
branch_labels = None
depends_on = None


RECURRENCE_FREQUENCY = sa.Enum(
    'DAILY', 'WEEKLY', 'BIWEEKLY', 'MONTHLY', 'QUARTERLY', 'ANNUALLY',
    name='recurrencefrequency',
)
INVOICE_STATUS = sa.Enum(
    'DRAFT', 'SENT', 'PENDING', 'PAID', 'OVERDUE', 'CANCELLED',
    name='invoicestatus',
)
ACTIVITY_TYPE = sa.Enum(
    'RECURRING_INVOICE_GENERATED', 'RECURRING_INVOICE_EMAILED', 'PAYMENT_REMINDER_SENT',
    name='activitytype',
)
NOTIFICATION_TYPE = sa.Enum(
    'PAYMENT_OVERDUE', 'PAYMENT_DUE_SOON', 'RECURRING_INVOICE_GENERATED',
    name='notificationtype',
)
CUSTOMER_STATUS = sa.Enum('ACTIVE', 'INACTIVE', name='customerstatus')


def _base_columns():
    return [
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _tenant_column(table_name: str):
    return sa.Column(
        'tenant_id',
        sa.Uuid(),
        sa.ForeignKey('tenants.id', ondelete='CASCADE', name=f'fk_{table_name}_tenant_id_tenants'),
        nullable=False,
    )


def _money(name: str):
    return sa.Column(name, sa.Numeric(precision=15, scale=2), nullable=False, server_default='0')


def upgrade() -> None:
    """Create recurring billing tables."""

    op.create_table(
        'tenants',
        *_base_columns(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.PrimaryKeyConstraint('id', name='pk_tenants'),
    )
    op.create_index('ix_tenants_is_active', 'tenants', ['is_active'])

    op.create_table(
        'companies',
        *_base_columns(),
        _tenant_column('companies'),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_companies'),
    )
    op.create_index('ix_companies_tenant_id', 'companies', ['tenant_id'])

    op.create_table(
        'customers',
        *_base_columns(),
        _tenant_column('customers'),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('status', CUSTOMER_STATUS, nullable=False, server_default='ACTIVE'),
        _money('outstanding_balance'),
        sa.PrimaryKeyConstraint('id', name='pk_customers'),
    )
    op.create_index('ix_customers_tenant_id', 'customers', ['tenant_id'])

    op.create_table(
        'tenant_holidays',
        *_base_columns(),
        _tenant_column('tenant_holidays'),
        sa.Column('holiday_date', sa.Date(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('recurs_annually', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint('id', name='pk_tenant_holidays'),
        sa.UniqueConstraint('tenant_id', 'holiday_date', name='uq_tenant_holidays_tenant_date'),
    )
    op.create_index('ix_tenant_holidays_tenant_id', 'tenant_holidays', ['tenant_id'])

    op.create_table(
        'recurring_invoice_templates',
        *_base_columns(),
        _tenant_column('recurring_invoice_templates'),
        sa.Column('company_id', sa.Uuid(), sa.ForeignKey(
            'companies.id', ondelete='RESTRICT',
            name='fk_recurring_invoice_templates_company_id_companies'), nullable=False),
        sa.Column('customer_id', sa.Uuid(), sa.ForeignKey(
            'customers.id', ondelete='RESTRICT',
            name='fk_recurring_invoice_templates_customer_id_customers'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('frequency', RECURRENCE_FREQUENCY, nullable=False),
        sa.Column('interval_count', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('next_run_date', sa.Date(), nullable=False),
        sa.Column('last_run_date', sa.Date(), nullable=True),
        sa.Column('invoices_generated', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('day_of_week', sa.Integer(), nullable=True),
        sa.Column('day_of_month', sa.Integer(), nullable=True),
        sa.Column('business_days_only', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('skip_holidays', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('timezone', sa.String(64), nullable=False, server_default='UTC'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('auto_send', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('payment_terms', sa.Integer(), nullable=True),
        sa.Column('currency', sa.String(3), nullable=False, server_default='USD'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('terms', sa.Text(), nullable=True),
        sa.Column('skip_if_customer_inactive', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('skip_if_outstanding_balance', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('max_outstanding_amount', sa.Numeric(precision=15, scale=2), nullable=True),
        _money('subtotal'),
        _money('tax_total'),
        _money('total_amount'),
        sa.PrimaryKeyConstraint('id', name='pk_recurring_invoice_templates'),
        sa.CheckConstraint(
            'interval_count >= 1',
            name='ck_recurring_invoice_templates_interval_positive',
        ),
    )
    op.create_index('ix_recurring_invoice_templates_tenant_id', 'recurring_invoice_templates', ['tenant_id'])
    op.create_index('ix_recurring_invoice_templates_next_run_date', 'recurring_invoice_templates', ['next_run_date'])
    op.create_index('ix_recurring_invoice_templates_is_active', 'recurring_invoice_templates', ['is_active'])

    op.create_table(
        'recurring_invoice_lines',
        *_base_columns(),
        _tenant_column('recurring_invoice_lines'),
        sa.Column('template_id', sa.Uuid(), sa.ForeignKey(
            'recurring_invoice_templates.id', ondelete='CASCADE',
            name='fk_recurring_invoice_lines_template_id_recurring_invoice_templates'), nullable=False),
        sa.Column('description', sa.String(500), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=10, scale=2), nullable=False, server_default='1'),
        _money('unit_price'),
        _money('line_total'),
        sa.Column('tax_rate', sa.Numeric(precision=5, scale=2), nullable=False, server_default='0'),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id', name='pk_recurring_invoice_lines'),
    )
    op.create_index('ix_recurring_invoice_lines_tenant_id', 'recurring_invoice_lines', ['tenant_id'])
    op.create_index('ix_recurring_invoice_lines_template_id', 'recurring_invoice_lines', ['template_id'])

    op.create_table(
        'invoices',
        *_base_columns(),
        _tenant_column('invoices'),
        sa.Column('company_id', sa.Uuid(), sa.ForeignKey(
            'companies.id', ondelete='RESTRICT', name='fk_invoices_company_id_companies'), nullable=False),
        sa.Column('customer_id', sa.Uuid(), sa.ForeignKey(
            'customers.id', ondelete='SET NULL', name='fk_invoices_customer_id_customers'), nullable=True),
        sa.Column('recurring_template_id', sa.Uuid(), sa.ForeignKey(
            'recurring_invoice_templates.id', ondelete='SET NULL',
            name='fk_invoices_recurring_template_id_recurring_invoice_templates'), nullable=True),
        sa.Column('invoice_number', sa.String(50), nullable=False),
        sa.Column('issue_date', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('status', INVOICE_STATUS, nullable=False, server_default='DRAFT'),
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default=sa.false()),
        _money('subtotal'),
        _money('tax_total'),
        _money('total_amount'),
        _money('amount_paid'),
        _money('balance_due'),
        sa.Column('currency', sa.String(3), nullable=False, server_default='USD'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('terms', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_invoices'),
        sa.UniqueConstraint('tenant_id', 'invoice_number', name='uq_invoices_tenant_invoice_number'),
    )
    op.create_index('ix_invoices_tenant_id', 'invoices', ['tenant_id'])
    op.create_index('ix_invoices_invoice_number', 'invoices', ['invoice_number'])
    op.create_index('ix_invoices_due_date', 'invoices', ['due_date'])
    op.create_index('ix_invoices_status', 'invoices', ['status'])
    op.create_index('ix_invoices_recurring_template_id', 'invoices', ['recurring_template_id'])

    op.create_table(
        'invoice_line_items',
        *_base_columns(),
        _tenant_column('invoice_line_items'),
        sa.Column('invoice_id', sa.Uuid(), sa.ForeignKey(
            'invoices.id', ondelete='CASCADE', name='fk_invoice_line_items_invoice_id_invoices'), nullable=False),
        sa.Column('description', sa.String(500), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=10, scale=2), nullable=False, server_default='1'),
        sa.Column('unit_price', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('line_total', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('tax_rate', sa.Numeric(precision=5, scale=2), nullable=False, server_default='0'),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id', name='pk_invoice_line_items'),
    )
    op.create_index('ix_invoice_line_items_tenant_id', 'invoice_line_items', ['tenant_id'])
    op.create_index('ix_invoice_line_items_invoice_id', 'invoice_line_items', ['invoice_id'])

    op.create_table(
        'invoice_activities',
        *_base_columns(),
        _tenant_column('invoice_activities'),
        sa.Column('invoice_id', sa.Uuid(), sa.ForeignKey(
            'invoices.id', ondelete='CASCADE', name='fk_invoice_activities_invoice_id_invoices'), nullable=False),
        sa.Column('activity_type', ACTIVITY_TYPE, nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_invoice_activities'),
    )
    op.create_index('ix_invoice_activities_tenant_id', 'invoice_activities', ['tenant_id'])
    op.create_index('ix_invoice_activities_invoice_id', 'invoice_activities', ['invoice_id'])

    op.create_table(
        'notifications',
        *_base_columns(),
        _tenant_column('notifications'),
        sa.Column('invoice_id', sa.Uuid(), sa.ForeignKey(
            'invoices.id', ondelete='CASCADE', name='fk_notifications_invoice_id_invoices'), nullable=True),
        sa.Column('notification_type', NOTIFICATION_TYPE, nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('recipient_email', sa.String(255), nullable=True),
        sa.Column('email_sent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint('id', name='pk_notifications'),
    )
    op.create_index('ix_notifications_tenant_id', 'notifications', ['tenant_id'])
    op.create_index('ix_notifications_invoice_id', 'notifications', ['invoice_id'])
    op.create_index('ix_notifications_notification_type', 'notifications', ['notification_type'])

    op.create_table(
        'weekly_reports',
        *_base_columns(),
        _tenant_column('weekly_reports'),
        sa.Column('period', sa.String(20), nullable=False, server_default='week'),
        sa.Column('period_start', sa.DateTime(timezone=True), nullable=False),
        sa.Column('period_end', sa.DateTime(timezone=True), nullable=False),
        sa.Column('total_invoices', sa.Integer(), nullable=False, server_default='0'),
        _money('total_amount'),
        sa.Column('paid_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('overdue_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('generated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_weekly_reports'),
    )
    op.create_index('ix_weekly_reports_tenant_id', 'weekly_reports', ['tenant_id'])


def downgrade() -> None:
    """Drop recurring billing tables."""
    for table in (
        'weekly_reports',
        'notifications',
        'invoice_activities',
        'invoice_line_items',
        'invoices',
        'recurring_invoice_lines',
        'recurring_invoice_templates',
        'tenant_holidays',
        'customers',
        'companies',
        'tenants',
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum_type in (
        NOTIFICATION_TYPE, ACTIVITY_TYPE, INVOICE_STATUS, RECURRENCE_FREQUENCY, CUSTOMER_STATUS,
    ):
        enum_type.drop(bind, checkfirst=True)
