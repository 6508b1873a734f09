# app/db/base.py
"""
Tubely — SQLAlchemy Base registry
=================================

Import all ORM models so their tables are registered on `Base.metadata`
(Alembic autogeneration, `create_all` in tests).

Tip: Keep this file import-only; no runtime logic.
"""

from app.db.base_class import Base
from app.db.models.media_asset import MediaAsset

__all__ = ["Base", "MediaAsset"]
