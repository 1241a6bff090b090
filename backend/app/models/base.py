from datetime import datetime

from sqlalchemy import Column, DateTime

from ..database import Base


class BaseModel(Base):
    """Shared audit columns.

    Messages are ordered by ``created_at`` when a thread is read back, so it is
    always set on insert.
    """

    __abstract__ = True

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
