import enum

class BookingStatus(str, enum.Enum):
    """Lifecycle of a booking between an artist and an organizer or venue."""
    INQUIRY = "inquiry"
    OFFERED = "offered"
    NEGOTIATING = "negotiating"
    # Terms agreed; a contract is drawn up downstream
    CONTRACTING = "contracting"
    CONFIRMED = "confirmed"
    PAID_DEPOSIT = "paid_deposit"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DISPUTED = "disputed"
    REFUNDED = "refunded"
