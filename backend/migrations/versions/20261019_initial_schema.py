"""Initial schema: stations, shifts, meter readings, sales, reconciliation, reports

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

This migration adds:
1. Station, Employee and FuelPrice reference tables
2. Shift and MeterReading (shift ledger)
3. Transaction and Expense (posted sales and costs)
4. SalesMismatch (one per shift, unique on shift_id)
5. FinancialReport (one per station/type/date, unique key)
6. ActivityLog (append-only audit trail)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. REFERENCE TABLES
    # ==========================================================================
    op.create_table('stations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('stations', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_stations_code'), ['code'], unique=True)
        batch_op.create_index(batch_op.f('ix_stations_is_active'), ['is_active'], unique=False)

    op.create_table('employees',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('station_id', sa.Integer(), nullable=True),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False, server_default='attendant'),
        sa.Column('hourly_rate', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['station_id'], ['stations.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('employees', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_employees_station_id'), ['station_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_employees_is_active'), ['is_active'], unique=False)

    op.create_table('fuel_prices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('station_id', sa.Integer(), nullable=False),
        sa.Column('fuel_type', sa.String(length=32), nullable=False),
        sa.Column('price_per_unit', sa.Numeric(precision=10, scale=3), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['station_id'], ['stations.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('station_id', 'fuel_type', name='uq_fuel_prices_station_fuel'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('fuel_prices', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_fuel_prices_station_id'), ['station_id'], unique=False)

    # ==========================================================================
    # 2. SHIFT LEDGER
    # ==========================================================================
    op.create_table('shifts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('station_id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('dispenser_ids', sa.JSON(), nullable=False),
        sa.Column('starting_cash', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('ending_cash', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['station_id'], ['stations.id'], ),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('shifts', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_shifts_station_id'), ['station_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_shifts_employee_id'), ['employee_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_shifts_status'), ['status'], unique=False)
        batch_op.create_index('ix_shifts_employee_status', ['employee_id', 'status'], unique=False)
        batch_op.create_index('ix_shifts_station_start', ['station_id', 'start_time'], unique=False)
        batch_op.create_index(
            'uq_shifts_employee_active',
            ['employee_id'],
            unique=True,
            postgresql_where=sa.text("status = 'active'"),
            sqlite_where=sa.text("status = 'active'"),
        )

    op.create_table('meter_readings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shift_id', sa.Integer(), nullable=False),
        sa.Column('dispenser_id', sa.Integer(), nullable=False),
        sa.Column('fuel_type', sa.String(length=32), nullable=False),
        sa.Column('start_reading', sa.Numeric(precision=14, scale=3), nullable=False),
        sa.Column('end_reading', sa.Numeric(precision=14, scale=3), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['shift_id'], ['shifts.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('shift_id', 'dispenser_id', 'fuel_type', name='uq_meter_readings_shift_dispenser_fuel'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('meter_readings', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_meter_readings_shift_id'), ['shift_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_meter_readings_dispenser_id'), ['dispenser_id'], unique=False)

    # ==========================================================================
    # 3. POSTED SALES AND EXPENSES
    # ==========================================================================
    op.create_table('transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('station_id', sa.Integer(), nullable=False),
        sa.Column('shift_id', sa.Integer(), nullable=False),
        sa.Column('total_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('payment_method', sa.String(length=32), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['station_id'], ['stations.id'], ),
        sa.ForeignKeyConstraint(['shift_id'], ['shifts.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('transactions', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_transactions_station_id'), ['station_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_transactions_shift_id'), ['shift_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_transactions_created_at'), ['created_at'], unique=False)
        batch_op.create_index('ix_transactions_station_created', ['station_id', 'created_at'], unique=False)

    op.create_table('expenses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('station_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('expense_type', sa.String(length=64), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['station_id'], ['stations.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('expenses', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_expenses_station_id'), ['station_id'], unique=False)
        batch_op.create_index('ix_expenses_station_date', ['station_id', 'date'], unique=False)

    # ==========================================================================
    # 4. SALES MISMATCHES
    # ==========================================================================
    op.create_table('sales_mismatches',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shift_id', sa.Integer(), nullable=False),
        sa.Column('expected_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('actual_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('mismatch_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('is_resolved', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('resolution_note', sa.Text(), nullable=True),
        sa.Column('resolved_by', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['shift_id'], ['shifts.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('shift_id', name='uq_sales_mismatches_shift'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sales_mismatches', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sales_mismatches_is_resolved'), ['is_resolved'], unique=False)
        batch_op.create_index('ix_sales_mismatches_resolved_created', ['is_resolved', 'created_at'], unique=False)

    # ==========================================================================
    # 5. FINANCIAL REPORTS
    # ==========================================================================
    op.create_table('financial_reports',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('station_id', sa.Integer(), nullable=False),
        sa.Column('report_type', sa.String(length=16), nullable=False),
        sa.Column('report_date', sa.Date(), nullable=False),
        sa.Column('period_start', sa.Date(), nullable=False),
        sa.Column('period_end', sa.Date(), nullable=False),
        sa.Column('sales_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('expenses_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('profit_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('transaction_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('expense_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['station_id'], ['stations.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('station_id', 'report_type', 'report_date', name='uq_financial_reports_key'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('financial_reports', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_financial_reports_station_id'), ['station_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_financial_reports_report_type'), ['report_type'], unique=False)
        batch_op.create_index('ix_financial_reports_station_date', ['station_id', 'report_date'], unique=False)

    # ==========================================================================
    # 6. ACTIVITY LOG
    # ==========================================================================
    op.create_table('activity_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(length=32), nullable=False),
        sa.Column('entity_type', sa.String(length=64), nullable=False),
        sa.Column('entity_id', sa.String(length=64), nullable=False),
        sa.Column('actor_id', sa.String(length=64), nullable=True),
        sa.Column('station_id', sa.Integer(), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['station_id'], ['stations.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('activity_logs', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_activity_logs_action'), ['action'], unique=False)
        batch_op.create_index(batch_op.f('ix_activity_logs_actor_id'), ['actor_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_activity_logs_station_id'), ['station_id'], unique=False)
        batch_op.create_index('ix_activity_logs_entity', ['entity_type', 'entity_id'], unique=False)
        batch_op.create_index('ix_activity_logs_created', ['created_at'], unique=False)


def downgrade():
    op.drop_table('activity_logs')
    op.drop_table('financial_reports')
    op.drop_table('sales_mismatches')
    op.drop_table('expenses')
    op.drop_table('transactions')
    op.drop_table('meter_readings')
    op.drop_table('shifts')
    op.drop_table('fuel_prices')
    op.drop_table('employees')
    op.drop_table('stations')
