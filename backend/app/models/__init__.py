from .user import User, UserRole
from .parties import Artist, Organizer, Venue
from .event import Event
from .booking import Booking
from .booking_status import BookingStatus
from .booking_proposal import BookingProposal, ProposalStatus
from .conversation import Conversation, ConversationParticipant
from .workflow import ConversationWorkflowInstance
from .message import Message, MessageType

__all__ = [
    "User",
    "UserRole",
    "Artist",
    "Organizer",
    "Venue",
    "Event",
    "Booking",
    "BookingStatus",
    "BookingProposal",
    "ProposalStatus",
    "Conversation",
    "ConversationParticipant",
    "ConversationWorkflowInstance",
    "Message",
    "MessageType",
]
