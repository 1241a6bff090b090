# backend/app/models/parties.py

from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship

from .base import BaseModel


class Artist(BaseModel):
    __tablename__ = "artists"

    id      = Column(Integer, primary_key=True, index=True)
    # Nullable: an act may be listed before anyone claims it
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    name    = Column(String, nullable=False)

    user     = relationship("User", back_populates="artist_profile")
    bookings = relationship("Booking", back_populates="artist")


class Organizer(BaseModel):
    __tablename__ = "organizers"

    id      = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name    = Column(String, nullable=True)

    user   = relationship("User", back_populates="organizer_profile")
    events = relationship("Event", back_populates="organizer")


class Venue(BaseModel):
    __tablename__ = "venues"

    id      = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name    = Column(String, nullable=False)
    address = Column(String, nullable=True)

    user   = relationship("User", back_populates="venues")
    events = relationship("Event", back_populates="venue")
