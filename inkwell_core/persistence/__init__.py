"""
Inkwell persistence layer based on SQLAlchemy models and alembic migrations
"""
