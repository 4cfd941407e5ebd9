"""Initial newsdesk schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19

Sources, raw articles (unique canonical_id) and generated articles
(unique raw_article_id, with translation columns).
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'sources',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(255), unique=True, nullable=False),
        sa.Column('type', sa.String(16), nullable=False),
        sa.Column('url', sa.Text, nullable=True),
        sa.Column('category', sa.String(32), nullable=False),
        sa.Column('enabled', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('failure_count', sa.Integer, nullable=False, server_default='0'),
        sa.Column('last_error', sa.Text, nullable=True),
        sa.Column('last_fetched_at', sa.DateTime, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=True),
    )

    op.create_table(
        'raw_articles',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('source_id', sa.Uuid(), sa.ForeignKey('sources.id'), nullable=True),
        sa.Column('source_name', sa.String(255), nullable=False),
        sa.Column('title', sa.Text, nullable=False),
        sa.Column('url', sa.Text, nullable=False),
        sa.Column('canonical_id', sa.String(64), unique=True, nullable=False),
        sa.Column('published_at', sa.DateTime, nullable=True),
        sa.Column('author', sa.String(512), nullable=True),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('content', sa.Text, nullable=True),
        sa.Column('image_url', sa.Text, nullable=True),
        sa.Column('language', sa.String(8), nullable=False, server_default='en'),
        sa.Column('category', sa.String(32), nullable=True),
        sa.Column('status', sa.String(16), nullable=False, server_default='queued'),
        sa.Column('error_message', sa.Text, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=False),
    )
    op.create_index('ix_raw_articles_status', 'raw_articles', ['status'])
    op.create_index('ix_raw_articles_created_at', 'raw_articles', ['created_at'])

    op.create_table(
        'generated_articles',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('raw_article_id', sa.Uuid(), sa.ForeignKey('raw_articles.id'), unique=True, nullable=False),
        sa.Column('category', sa.String(32), nullable=True),
        sa.Column('headline', sa.Text, nullable=False),
        sa.Column('summary', sa.Text, nullable=False),
        sa.Column('body', sa.Text, nullable=False),
        sa.Column('hashtags', sa.JSON, nullable=False),
        sa.Column('source_attribution', sa.Text, nullable=False),
        sa.Column('generation_method', sa.String(16), nullable=False),
        sa.Column('generation_model', sa.String(64), nullable=True),
        sa.Column('translated_language', sa.String(8), nullable=True),
        sa.Column('translated_headline', sa.Text, nullable=True),
        sa.Column('translated_summary', sa.Text, nullable=True),
        sa.Column('translated_body', sa.Text, nullable=True),
        sa.Column('translated_hashtags', sa.JSON, nullable=True),
        sa.Column('translated_attribution', sa.Text, nullable=True),
        sa.Column('translated_at', sa.DateTime, nullable=True),
        sa.Column('status', sa.String(16), nullable=False, server_default='draft'),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=True),
    )
    op.create_index('ix_generated_articles_status', 'generated_articles', ['status'])


def downgrade() -> None:
    op.drop_index('ix_generated_articles_status', table_name='generated_articles')
    op.drop_table('generated_articles')
    op.drop_index('ix_raw_articles_created_at', table_name='raw_articles')
    op.drop_index('ix_raw_articles_status', table_name='raw_articles')
    op.drop_table('raw_articles')
    op.drop_table('sources')
