"""Workshop job cards and the parts drawn against them

Revision ID: 20261020_jobs
Revises: 20261019_initial
Create Date: 2026-10-20
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261020_jobs'
down_revision = '20261019_initial'
branch_labels = None
depends_on = None


def _created_at():
    return sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False)


def upgrade():
    op.create_table('jobs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_unit_id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=True),
        sa.Column('customer_name', sa.String(length=128), nullable=True),
        sa.Column('vehicle_details', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='In Progress'),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('total_parts_cost', sa.Numeric(precision=14, scale=2), nullable=False, server_default='0'),
        _created_at(),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['business_unit_id'], ['business_units.id'], ),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('jobs', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_jobs_business_unit_id'), ['business_unit_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_jobs_customer_id'), ['customer_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_jobs_status'), ['status'], unique=False)

    op.create_table('job_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('job_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('quantity_used', sa.Numeric(precision=14, scale=3), nullable=False),
        sa.Column('cost_at_time_of_use', sa.Numeric(precision=14, scale=4), nullable=False),
        sa.Column('line_cost', sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['job_id'], ['jobs.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('job_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_job_items_job_id'), ['job_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_job_items_product_id'), ['product_id'], unique=False)


def downgrade():
    op.drop_table('job_items')
    op.drop_table('jobs')
