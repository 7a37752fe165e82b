"""add_order_tracking

Revision ID: 8c27d4e1f903
Revises: 3f1a9c2e7b40
Create Date: 2026-10-19 15:40:02.731144+00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '8c27d4e1f903'
down_revision: Union[str, None] = '3f1a9c2e7b40'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column('purchase_orders', sa.Column('tracking_number', sa.String(length=100), nullable=True))
    op.add_column('purchase_orders', sa.Column('expected_delivery_date', sa.Date(), nullable=True))
    op.add_column('purchase_orders', sa.Column('actual_delivery_date', sa.Date(), nullable=True))
    op.add_column('purchase_orders', sa.Column('notes', sa.Text(), nullable=True))
    op.add_column('purchase_orders', sa.Column('version', sa.Integer(), server_default='1', nullable=False))
    op.add_column('purchase_orders', sa.Column('updated_at', sa.DateTime(), nullable=True))

    # Existing orders have not been placed with the supplier yet
    op.execute("UPDATE purchase_orders SET status = 'NOT_PLACED' WHERE status = 'ISSUED'")
    op.create_check_constraint(
        'chk_po_order_status',
        'purchase_orders',
        "status IN ('NOT_PLACED','ORDER_PLACED','DELIVERED')",
    )
    op.create_index('idx_po_request', 'purchase_orders', ['request_id'], unique=False)

    op.add_column('item_requests', sa.Column('order_status', sa.String(length=20), nullable=True))
    op.execute(
        "UPDATE item_requests SET order_status = ("
        "SELECT po.status FROM purchase_orders po WHERE po.request_id = item_requests.id LIMIT 1)"
    )


def downgrade() -> None:
    op.drop_column('item_requests', 'order_status')

    op.drop_index('idx_po_request', table_name='purchase_orders')
    op.drop_constraint('chk_po_order_status', 'purchase_orders', type_='check')
    op.execute("UPDATE purchase_orders SET status = 'ISSUED'")
    op.drop_column('purchase_orders', 'updated_at')
    op.drop_column('purchase_orders', 'version')
    op.drop_column('purchase_orders', 'notes')
    op.drop_column('purchase_orders', 'actual_delivery_date')
    op.drop_column('purchase_orders', 'expected_delivery_date')
    op.drop_column('purchase_orders', 'tracking_number')
