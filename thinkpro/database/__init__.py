"""Database package for ThinkPro."""

from thinkpro.database.base import Base, ModelBase, UTCDateTime, metadata

__all__ = ["Base", "ModelBase", "UTCDateTime", "metadata"]
