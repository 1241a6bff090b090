from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.orm import Session, joinedload

from .. import models
from ..models.booking_status import BookingStatus


def get_booking(db: Session, booking_id: int) -> Optional[models.Booking]:
    return db.query(models.Booking).filter(models.Booking.id == booking_id).first()


def get_booking_with_details(db: Session, booking_id: int) -> Optional[models.Booking]:
    """Load a booking with the artist and event parties needed for negotiation."""
    return (
        db.query(models.Booking)
        .options(
            joinedload(models.Booking.artist),
            joinedload(models.Booking.event).joinedload(models.Event.organizer),
            joinedload(models.Booking.event).joinedload(models.Event.venue),
        )
        .filter(models.Booking.id == booking_id)
        .first()
    )


def apply_negotiation_directives(
    booking: models.Booking,
    status: Optional[str],
    offer_amount: Optional[Any],
) -> models.Booking:
    """Apply status / offer directives from a transition; ``None`` leaves a field alone.

    Does not commit; the caller owns the transaction.
    """
    if status is not None:
        booking.status = BookingStatus(status)
    if offer_amount is not None:
        booking.offer_amount = Decimal(str(offer_amount))
    return booking


def create_proposal(
    db: Session,
    booking_id: int,
    created_by: int,
    round: int,
    proposed_terms: dict,
) -> models.BookingProposal:
    """Record a counter-proposal; earlier active proposals expire."""
    (
        db.query(models.BookingProposal)
        .filter(
            models.BookingProposal.booking_id == booking_id,
            models.BookingProposal.status == models.ProposalStatus.ACTIVE,
        )
        .update(
            {models.BookingProposal.status: models.ProposalStatus.EXPIRED},
            synchronize_session="fetch",
        )
    )
    proposal = models.BookingProposal(
        booking_id=booking_id,
        created_by=created_by,
        round=round,
        proposed_terms=dict(proposed_terms or {}),
        note=(proposed_terms or {}).get("note"),
        status=models.ProposalStatus.ACTIVE,
    )
    db.add(proposal)
    db.flush()
    return proposal


def close_active_proposal(
    db: Session, booking_id: int, status: models.ProposalStatus
) -> Optional[models.BookingProposal]:
    proposal = (
        db.query(models.BookingProposal)
        .filter(
            models.BookingProposal.booking_id == booking_id,
            models.BookingProposal.status == models.ProposalStatus.ACTIVE,
        )
        .order_by(models.BookingProposal.round.desc())
        .first()
    )
    if proposal is not None:
        proposal.status = status
    return proposal
