"""Create quote pipeline tables

Revision ID: 001_quote_pipeline
Revises:
Create Date: 2026-10-19

Note: Tables that already exist are skipped so the migration can be applied
to a database created by init_db().
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_quote_pipeline'
down_revision = None
branch_labels = None
depends_on = None


def table_exists(conn, table_name):
    """Check if a table exists in the database."""
    return sa.inspect(conn).has_table(table_name)


def upgrade():
    """Create clients, projects, requirements, quotes, quote_sequences and documents."""
    conn = op.get_bind()

    if not table_exists(conn, 'clients'):
        op.create_table(
            'clients',
            sa.Column('id', sa.String(36), primary_key=True),
            sa.Column('full_name', sa.String(255), nullable=False),
            sa.Column('business_name', sa.String(255)),
            sa.Column('address', sa.Text()),
            sa.Column('phone', sa.String(50)),
            sa.Column('email', sa.String(255)),
            sa.Column('tax_id', sa.String(50)),
        )

    if not table_exists(conn, 'projects'):
        op.create_table(
            'projects',
            sa.Column('id', sa.String(36), primary_key=True),
            sa.Column('client_id', sa.String(36), sa.ForeignKey('clients.id'), nullable=False, index=True),
            sa.Column('name', sa.String(255), nullable=False),
        )

    if not table_exists(conn, 'requirements'):
        op.create_table(
            'requirements',
            sa.Column('id', sa.String(36), primary_key=True),
            sa.Column('project_id', sa.String(36), sa.ForeignKey('projects.id'), nullable=False, index=True),
            sa.Column('position', sa.Float(), nullable=False, server_default='0'),
            sa.Column('title', sa.String(255), nullable=False),
            sa.Column('description', sa.Text()),
            sa.Column('estimated_hours', sa.Float()),
            sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        )

    if not table_exists(conn, 'quotes'):
        op.create_table(
            'quotes',
            sa.Column('id', sa.String(36), primary_key=True),
            sa.Column('quote_number', sa.String(20), nullable=False, unique=True, index=True),
            sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
            sa.Column('client_id', sa.String(36), sa.ForeignKey('clients.id'), nullable=False, index=True),
            sa.Column('project_id', sa.String(36), sa.ForeignKey('projects.id'), nullable=True, index=True),
            sa.Column('linked_requirement_ids', sa.JSON(), nullable=False),
            sa.Column('created_by', sa.String(64)),
            sa.Column('business_info', sa.JSON(), nullable=False),
            sa.Column('client_info', sa.JSON(), nullable=False),
            sa.Column('title', sa.String(255), nullable=False),
            sa.Column('items', sa.JSON(), nullable=False),
            sa.Column('discount', sa.Float(), nullable=False, server_default='0'),
            sa.Column('discount_type', sa.String(20), nullable=False, server_default='fixed'),
            sa.Column('include_vat', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('vat_rate', sa.Float(), nullable=False, server_default='17'),
            sa.Column('subtotal', sa.Float(), nullable=False, server_default='0'),
            sa.Column('vat_amount', sa.Float(), nullable=False, server_default='0'),
            sa.Column('total', sa.Float(), nullable=False, server_default='0'),
            sa.Column('notes', sa.Text()),
            sa.Column('terms', sa.Text()),
            sa.Column('valid_until', sa.Date()),
            sa.Column('status', sa.String(20), nullable=False, server_default='draft', index=True),
            sa.Column('pdf_locator', sa.Text()),
            sa.Column('pdf_storage_id', sa.String(255)),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
            sa.UniqueConstraint('project_id', 'version', name='uq_quotes_project_version'),
        )
        op.create_index('idx_quotes_client_status', 'quotes', ['client_id', 'status'])
        op.create_index('idx_quotes_created_at', 'quotes', ['created_at'])

    if not table_exists(conn, 'quote_sequences'):
        op.create_table(
            'quote_sequences',
            sa.Column('scope', sa.String(16), primary_key=True),
            sa.Column('value', sa.Integer(), nullable=False, server_default='0'),
        )

    if not table_exists(conn, 'documents'):
        op.create_table(
            'documents',
            sa.Column('id', sa.String(36), primary_key=True),
            sa.Column('client_id', sa.String(36), sa.ForeignKey('clients.id'), nullable=False, index=True),
            sa.Column('uploaded_by', sa.String(64)),
            sa.Column('file_name', sa.String(255), nullable=False),
            sa.Column('mime_type', sa.String(100), nullable=False),
            sa.Column('file_size', sa.Integer(), nullable=False),
            sa.Column('locator', sa.Text(), nullable=False),
            sa.Column('storage_strategy', sa.String(20), nullable=False),
            sa.Column('storage_id', sa.String(255)),
            sa.Column('category', sa.String(20), nullable=False, server_default='other'),
            sa.Column('description', sa.String(500)),
            sa.Column('related_quote_id', sa.String(36), index=True),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        )
        op.create_index('idx_documents_client_category', 'documents', ['client_id', 'category'])


def downgrade():
    """Drop the quote pipeline tables."""
    conn = op.get_bind()

    for table_name in ('documents', 'quote_sequences', 'quotes', 'requirements', 'projects', 'clients'):
        if table_exists(conn, table_name):
            op.drop_table(table_name)
