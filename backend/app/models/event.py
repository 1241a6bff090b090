from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from .base import BaseModel


class Event(BaseModel):
    __tablename__ = "events"

    id           = Column(Integer, primary_key=True, index=True)
    title        = Column(String, nullable=False)
    starts_at    = Column(DateTime, nullable=True)
    organizer_id = Column(Integer, ForeignKey("organizers.id"), nullable=True, index=True)
    venue_id     = Column(Integer, ForeignKey("venues.id"), nullable=True, index=True)

    organizer = relationship("Organizer", back_populates="events")
    venue     = relationship("Venue", back_populates="events")
    bookings  = relationship("Booking", back_populates="event")
