from sqlalchemy import Column, Integer, String, ForeignKey, JSON, Enum
from sqlalchemy.orm import relationship
import enum

from .base import BaseModel


class ProposalStatus(str, enum.Enum):
    ACTIVE = "active"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"
    WITHDRAWN = "withdrawn"


class BookingProposal(BaseModel):
    """One counter-proposal made during a booking negotiation."""

    __tablename__ = "booking_proposals"

    id             = Column(Integer, primary_key=True, index=True)
    booking_id     = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    created_by     = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    # Round number after the proposal was made (1-based)
    round          = Column(Integer, nullable=False)
    proposed_terms = Column(JSON, nullable=False, default=dict)
    note           = Column(String, nullable=True)
    status         = Column(
        Enum(ProposalStatus, name="proposalstatus", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=ProposalStatus.ACTIVE,
    )

    booking = relationship("Booking", back_populates="proposals")
    author  = relationship("User")
