"""Vendor requests

Revision ID: 20261020_vendor_requests
Revises: 20261019_initial
Create Date: 2026-10-20

Self-signup creates client accounts only; clients ask to become vendors
through a vendor request that an admin approves or rejects.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261020_vendor_requests'
down_revision = '20261019_initial'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('vendor_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('shop_name', sa.String(length=120), nullable=False),
        sa.Column('message', sa.String(length=1000), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reviewed_by_user_id', sa.Integer(), nullable=True),
        sa.Column('review_note', sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['reviewed_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('vendor_requests', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_vendor_requests_status'), ['status'], unique=False)
        batch_op.create_index('ix_vendor_requests_user_status', ['user_id', 'status'], unique=False)


def downgrade():
    with op.batch_alter_table('vendor_requests', schema=None) as batch_op:
        batch_op.drop_index('ix_vendor_requests_user_status')
        batch_op.drop_index(batch_op.f('ix_vendor_requests_status'))

    op.drop_table('vendor_requests')
