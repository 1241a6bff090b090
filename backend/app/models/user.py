# backend/app/models/user.py

from sqlalchemy import Boolean, Column, Integer, String, Enum
from sqlalchemy.orm import relationship
from .base import BaseModel
import enum

class UserRole(str, enum.Enum):
    """Marketplace roles a user account can hold."""

    ARTIST = "artist"
    ORGANIZER = "organizer"
    VENUE_MANAGER = "venue_manager"
    ADMIN = "admin"

class User(BaseModel):
    __tablename__ = "users"

    id           = Column(Integer, primary_key=True, index=True)
    email        = Column(String, unique=True, index=True, nullable=False)
    password     = Column(String, nullable=False)
    first_name   = Column(String, nullable=False)
    last_name    = Column(String, nullable=False)
    role         = Column(Enum(UserRole), nullable=False)
    is_active    = Column(Boolean, default=True)

    # ↔–↔ Each role profile belongs to exactly one user
    artist_profile = relationship("Artist", back_populates="user", uselist=False)
    organizer_profile = relationship("Organizer", back_populates="user", uselist=False)
    venues = relationship("Venue", back_populates="user")

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
