# backend/app/models/booking.py

from sqlalchemy import Column, Integer, Numeric, ForeignKey, String, Enum
from sqlalchemy.orm import relationship

from .base import BaseModel
from .booking_status import BookingStatus

class Booking(BaseModel):
    __tablename__ = "bookings"

    id             = Column(Integer, primary_key=True, index=True)
    event_id       = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=True, index=True)
    artist_id      = Column(Integer, ForeignKey("artists.id"), nullable=True, index=True)
    status         = Column(
        Enum(BookingStatus, name="bookingstatus", values_callable=lambda e: [m.value for m in e]),
        default=BookingStatus.INQUIRY,
        index=True,
    )
    offer_amount   = Column(Numeric(12, 2), nullable=True)
    offer_currency = Column(String(3), nullable=False, default="USD")
    notes          = Column(String, nullable=True)

    # Relationships
    artist    = relationship("Artist", back_populates="bookings")
    event     = relationship("Event", back_populates="bookings")
    proposals = relationship(
        "BookingProposal",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="BookingProposal.round",
    )

    # Counterparties are reached through the event
    @property
    def organizer(self):
        return self.event.organizer if self.event is not None else None

    @property
    def venue(self):
        return self.event.venue if self.event is not None else None
