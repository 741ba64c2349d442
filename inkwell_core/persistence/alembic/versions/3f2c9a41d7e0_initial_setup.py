"""initial setup

Revision ID: 3f2c9a41d7e0
Revises:
Create Date: 2026-10-17 09:12:31.482905

"""
from alembic import op
import sqlalchemy as sa


revision = '3f2c9a41d7e0'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('applications',
                    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
                    sa.Column('name', sa.String(length=255), nullable=False),
                    sa.Column('hashed_password', sa.String(length=255), nullable=False),
                    sa.Column('created', sa.DateTime(), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
                    sa.PrimaryKeyConstraint('id'),
                    sa.UniqueConstraint('id'),
                    sa.UniqueConstraint('name')
                    )
    op.create_table('tags',
                    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
                    sa.Column('name', sa.String(length=64), nullable=False),
                    sa.PrimaryKeyConstraint('id'),
                    sa.UniqueConstraint('id'),
                    sa.UniqueConstraint('name')
                    )
    op.create_table('articles',
                    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
                    sa.Column('slug', sa.String(length=255), nullable=False),
                    sa.Column('title', sa.String(length=255), nullable=False),
                    sa.Column('description', sa.String(length=1024), nullable=True),
                    sa.Column('author', sa.String(length=255), nullable=True),
                    sa.Column('body', sa.Text(), nullable=False),
                    sa.Column('words', sa.Integer(), nullable=False),
                    sa.Column('published', sa.Boolean(), nullable=False),
                    sa.Column('created', sa.DateTime(), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
                    sa.Column('modified', sa.DateTime(), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
                    sa.CheckConstraint('words >= 0'),
                    sa.PrimaryKeyConstraint('id'),
                    sa.UniqueConstraint('id'),
                    sa.UniqueConstraint('slug')
                    )
    op.create_table('article_tags',
                    sa.Column('article_id', sa.Integer(), nullable=False),
                    sa.Column('tag_id', sa.Integer(), nullable=False),
                    sa.ForeignKeyConstraint(['article_id'], ['articles.id'], ondelete='CASCADE'),
                    sa.ForeignKeyConstraint(['tag_id'], ['tags.id'], ondelete='CASCADE'),
                    sa.PrimaryKeyConstraint('article_id', 'tag_id')
                    )


def downgrade():
    op.drop_table('article_tags')
    op.drop_table('articles')
    op.drop_table('tags')
    op.drop_table('applications')
