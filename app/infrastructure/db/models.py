"""
Database Models (SQLAlchemy ORM)
One namespaced key-value table backs the portfolio store
"""

from sqlalchemy import Column, DateTime, String, Text

from app.infrastructure.db.database import Base
from app.utils.time import utc_now


class KeyValueEntryModel(Base):
    """Opaque JSON document per key"""
    __tablename__ = "key_value_store"

    key = Column(String(128), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    def __repr__(self):
        return f"<KeyValueEntry(key={self.key}, updated_at={self.updated_at})>"
