"""initial_schema

Revision ID: 3f1a9c2e7b40
Revises:
Create Date: 2026-10-19 09:12:44.518202+00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3f1a9c2e7b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # 1. users (no FKs)
    op.create_table('users',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('email', sa.String(length=255), nullable=False),
    sa.Column('password_hash', sa.String(length=255), nullable=True),
    sa.Column('full_name', sa.String(length=200), nullable=True),
    sa.Column('role', sa.String(length=50), nullable=False),
    sa.Column('building_id', sa.String(length=50), nullable=True),
    sa.Column('is_active', sa.Boolean(), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.Column('last_login_at', sa.DateTime(), nullable=True),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('email')
    )
    op.create_index('idx_users_role', 'users', ['role'], unique=False)

    # 2. item_requests
    op.create_table('item_requests',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('request_number', sa.String(length=50), nullable=False),
    sa.Column('building_id', sa.String(length=50), nullable=False),
    sa.Column('priority', sa.String(length=20), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('notes', sa.Text(), nullable=True),
    sa.Column('status', sa.String(length=50), nullable=False),
    sa.Column('submitter_id', sa.Uuid(), nullable=False),
    sa.Column('submitter_email', sa.String(length=255), nullable=True),
    sa.Column('estimated_budget', sa.Numeric(precision=14, scale=2), nullable=False),
    sa.Column('version', sa.Integer(), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.Column('updated_at', sa.DateTime(), nullable=False),
    sa.Column('submitted_at', sa.DateTime(), nullable=True),
    sa.Column('completed_at', sa.DateTime(), nullable=True),
    sa.CheckConstraint(
        "status IN ('DRAFT','SUBMITTED','BUILDING_APPROVED','MAINTENANCE_APPROVED',"
        "'DIRECTOR_APPROVED','EXECUTED','REJECTED')",
        name='chk_request_status'),
    sa.CheckConstraint("priority IN ('LOW','NORMAL','HIGH','URGENT')", name='chk_request_priority'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('request_number')
    )
    op.create_index('idx_requests_status', 'item_requests', ['status'], unique=False)
    op.create_index('idx_requests_submitter', 'item_requests', ['submitter_id'], unique=False)
    op.create_index('idx_requests_building', 'item_requests', ['building_id'], unique=False)

    # 3. request_items
    op.create_table('request_items',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('request_id', sa.Uuid(), nullable=False),
    sa.Column('line_number', sa.Integer(), nullable=False),
    sa.Column('item_name', sa.String(length=300), nullable=False),
    sa.Column('quantity', sa.Numeric(precision=12, scale=3), nullable=False),
    sa.Column('unit', sa.String(length=30), nullable=False),
    sa.Column('estimated_unit_price', sa.Numeric(precision=12, scale=2), nullable=False),
    sa.Column('specs', sa.Text(), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.CheckConstraint('quantity > 0', name='chk_request_item_qty'),
    sa.CheckConstraint('estimated_unit_price >= 0', name='chk_request_item_price'),
    sa.ForeignKeyConstraint(['request_id'], ['item_requests.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_request_items_request', 'request_items', ['request_id'], unique=False)

    # 4. request_approvals (ledger)
    op.create_table('request_approvals',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('request_id', sa.Uuid(), nullable=False),
    sa.Column('approval_level', sa.Integer(), nullable=False),
    sa.Column('approver_role', sa.String(length=50), nullable=False),
    sa.Column('approver_id', sa.Uuid(), nullable=True),
    sa.Column('approver_email', sa.String(length=255), nullable=True),
    sa.Column('decision', sa.String(length=20), nullable=False),
    sa.Column('comments', sa.Text(), nullable=True),
    sa.Column('decided_at', sa.DateTime(), nullable=False),
    sa.CheckConstraint('approval_level BETWEEN 1 AND 4', name='chk_approval_level_range'),
    sa.CheckConstraint("decision IN ('APPROVED','REJECTED')", name='chk_approval_decision'),
    sa.ForeignKeyConstraint(['request_id'], ['item_requests.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('request_id', 'approval_level', name='uq_request_approval_level')
    )
    op.create_index('idx_approvals_request', 'request_approvals', ['request_id'], unique=False)
    op.create_index('idx_approvals_role', 'request_approvals', ['approver_role'], unique=False)

    # 5. request_activity
    op.create_table('request_activity',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('request_id', sa.Uuid(), nullable=False),
    sa.Column('action', sa.String(length=50), nullable=False),
    sa.Column('actor_id', sa.Uuid(), nullable=True),
    sa.Column('actor_email', sa.String(length=255), nullable=True),
    sa.Column('details', sa.JSON(), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['request_id'], ['item_requests.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_request_activity_request', 'request_activity', ['request_id', 'created_at'], unique=False)

    # 6. suppliers
    op.create_table('suppliers',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('name', sa.String(length=255), nullable=False),
    sa.Column('email', sa.String(length=255), nullable=True),
    sa.Column('phone', sa.String(length=50), nullable=True),
    sa.Column('contact_name', sa.String(length=255), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('name')
    )

    # 7. quote_requests (request_id is a loose reference, no FK)
    op.create_table('quote_requests',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('quote_id', sa.String(length=50), nullable=False),
    sa.Column('supplier_id', sa.Uuid(), nullable=False),
    sa.Column('request_id', sa.Uuid(), nullable=True),
    sa.Column('status', sa.String(length=20), nullable=False),
    sa.Column('estimated_total', sa.Numeric(precision=14, scale=2), nullable=False),
    sa.Column('request_notes', sa.Text(), nullable=True),
    sa.Column('review_comments', sa.Text(), nullable=True),
    sa.Column('created_by', sa.Uuid(), nullable=False),
    sa.Column('version', sa.Integer(), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.Column('updated_at', sa.DateTime(), nullable=False),
    sa.CheckConstraint(
        "status IN ('pending','responded','approved','rejected','ordered')",
        name='chk_quote_status'),
    sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('quote_id')
    )
    op.create_index('idx_quotes_status', 'quote_requests', ['status'], unique=False)
    op.create_index('idx_quotes_request', 'quote_requests', ['request_id'], unique=False)
    op.create_index('idx_quotes_supplier', 'quote_requests', ['supplier_id'], unique=False)

    # 8. quote_items
    op.create_table('quote_items',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('quote_request_id', sa.Uuid(), nullable=False),
    sa.Column('line_number', sa.Integer(), nullable=False),
    sa.Column('part_number', sa.String(length=100), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('quantity', sa.Integer(), nullable=False),
    sa.Column('unit_price', sa.Numeric(precision=12, scale=2), nullable=True),
    sa.Column('supplier_sku', sa.String(length=100), nullable=True),
    sa.CheckConstraint('quantity > 0', name='chk_quote_item_qty'),
    sa.ForeignKeyConstraint(['quote_request_id'], ['quote_requests.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_quote_items_quote', 'quote_items', ['quote_request_id'], unique=False)

    # 9. supplier_responses (one per quote request)
    op.create_table('supplier_responses',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('quote_request_id', sa.Uuid(), nullable=False),
    sa.Column('item_prices', sa.JSON(), nullable=False),
    sa.Column('transport', sa.Numeric(precision=12, scale=2), nullable=False),
    sa.Column('minimum_order_charge', sa.Numeric(precision=12, scale=2), nullable=False),
    sa.Column('other_charge_amount', sa.Numeric(precision=12, scale=2), nullable=False),
    sa.Column('other_charge_description', sa.String(length=255), nullable=True),
    sa.Column('subtotal', sa.Numeric(precision=14, scale=2), nullable=False),
    sa.Column('total_charges', sa.Numeric(precision=14, scale=2), nullable=False),
    sa.Column('grand_total', sa.Numeric(precision=14, scale=2), nullable=False),
    sa.Column('quoted_price_per_unit', sa.Numeric(precision=14, scale=2), nullable=False),
    sa.Column('delivery_date', sa.Date(), nullable=True),
    sa.Column('payment_terms', sa.String(length=100), nullable=True),
    sa.Column('lead_time_days', sa.Integer(), nullable=True),
    sa.Column('notes', sa.Text(), nullable=True),
    sa.Column('attachments', sa.JSON(), nullable=True),
    sa.Column('responded_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['quote_request_id'], ['quote_requests.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('quote_request_id')
    )

    # 10. purchase_orders + lines
    op.create_table('purchase_orders',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('po_number', sa.String(length=50), nullable=False),
    sa.Column('quote_request_id', sa.Uuid(), nullable=False),
    sa.Column('supplier_id', sa.Uuid(), nullable=False),
    sa.Column('request_id', sa.Uuid(), nullable=True),
    sa.Column('status', sa.String(length=50), nullable=False),
    sa.Column('total', sa.Numeric(precision=14, scale=2), nullable=False),
    sa.Column('payment_terms', sa.String(length=100), nullable=True),
    sa.Column('created_by', sa.Uuid(), nullable=False),
    sa.Column('issued_at', sa.DateTime(), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['quote_request_id'], ['quote_requests.id'], ),
    sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('po_number'),
    sa.UniqueConstraint('quote_request_id')
    )
    op.create_index('idx_po_supplier', 'purchase_orders', ['supplier_id'], unique=False)
    op.create_index('idx_po_status', 'purchase_orders', ['status'], unique=False)

    op.create_table('po_line_items',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('po_id', sa.Uuid(), nullable=False),
    sa.Column('line_number', sa.Integer(), nullable=False),
    sa.Column('part_number', sa.String(length=100), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('quantity', sa.Integer(), nullable=False),
    sa.Column('unit_price', sa.Numeric(precision=12, scale=2), nullable=False),
    sa.Column('line_total', sa.Numeric(precision=14, scale=2), nullable=False),
    sa.CheckConstraint('quantity > 0', name='chk_po_line_qty'),
    sa.ForeignKeyConstraint(['po_id'], ['purchase_orders.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('po_id', 'line_number', name='uq_po_line_item')
    )
    op.create_index('idx_po_items_po', 'po_line_items', ['po_id'], unique=False)

    # 11. BOM catalogue
    op.create_table('spare_parts',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('part_number', sa.String(length=100), nullable=False),
    sa.Column('name', sa.String(length=300), nullable=False),
    sa.Column('unit_cost', sa.Numeric(precision=12, scale=2), nullable=False),
    sa.Column('stock_level', sa.Integer(), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('part_number')
    )
    op.create_table('assemblies',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('name', sa.String(length=300), nullable=False),
    sa.Column('machine_code', sa.String(length=50), nullable=True),
    sa.Column('description', sa.Text(), nullable=True),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_table('sub_assemblies',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('assembly_id', sa.Uuid(), nullable=False),
    sa.Column('name', sa.String(length=300), nullable=False),
    sa.Column('quantity', sa.Integer(), nullable=False),
    sa.CheckConstraint('quantity > 0', name='chk_sub_assembly_qty'),
    sa.ForeignKeyConstraint(['assembly_id'], ['assemblies.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_table('assembly_components',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('assembly_id', sa.Uuid(), nullable=False),
    sa.Column('sub_assembly_id', sa.Uuid(), nullable=True),
    sa.Column('part_id', sa.Uuid(), nullable=False),
    sa.Column('quantity', sa.Integer(), nullable=False),
    sa.CheckConstraint('quantity > 0', name='chk_component_qty'),
    sa.ForeignKeyConstraint(['assembly_id'], ['assemblies.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['sub_assembly_id'], ['sub_assemblies.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['part_id'], ['spare_parts.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_components_assembly', 'assembly_components', ['assembly_id'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_components_assembly', table_name='assembly_components')
    op.drop_table('assembly_components')
    op.drop_table('sub_assemblies')
    op.drop_table('assemblies')
    op.drop_table('spare_parts')
    op.drop_index('idx_po_items_po', table_name='po_line_items')
    op.drop_table('po_line_items')
    op.drop_index('idx_po_status', table_name='purchase_orders')
    op.drop_index('idx_po_supplier', table_name='purchase_orders')
    op.drop_table('purchase_orders')
    op.drop_table('supplier_responses')
    op.drop_index('idx_quote_items_quote', table_name='quote_items')
    op.drop_table('quote_items')
    op.drop_index('idx_quotes_supplier', table_name='quote_requests')
    op.drop_index('idx_quotes_request', table_name='quote_requests')
    op.drop_index('idx_quotes_status', table_name='quote_requests')
    op.drop_table('quote_requests')
    op.drop_table('suppliers')
    op.drop_index('idx_request_activity_request', table_name='request_activity')
    op.drop_table('request_activity')
    op.drop_index('idx_approvals_role', table_name='request_approvals')
    op.drop_index('idx_approvals_request', table_name='request_approvals')
    op.drop_table('request_approvals')
    op.drop_index('idx_request_items_request', table_name='request_items')
    op.drop_table('request_items')
    op.drop_index('idx_requests_building', table_name='item_requests')
    op.drop_index('idx_requests_submitter', table_name='item_requests')
    op.drop_index('idx_requests_status', table_name='item_requests')
    op.drop_table('item_requests')
    op.drop_index('idx_users_role', table_name='users')
    op.drop_table('users')
