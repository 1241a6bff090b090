"""Work out who negotiates a booking.

The artist side is the booking's artist user. The other side is the event
organizer, or the venue when the event has no organizer (direct venue
bookings). Works on ORM bookings and on plain mappings alike.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

NO_ARTIST_ERROR = "Booking has no artist"


@dataclass(frozen=True)
class ConversationParticipants:
    participant_ids: list[int] = field(default_factory=list)
    artist_user_id: Optional[int] = None
    other_party_user_id: Optional[int] = None
    subject: str = "Conversation"
    error: Optional[str] = None


def _read_field(source: Any, key: str) -> Any:
    if source is None:
        return None
    if isinstance(source, Mapping):
        return source.get(key)
    return getattr(source, key, None)


def resolve_negotiation_participants(booking: Any) -> ConversationParticipants:
    artist = _read_field(booking, "artist")
    if artist is None:
        return ConversationParticipants(error=NO_ARTIST_ERROR)

    artist_user_id = _read_field(artist, "user_id")
    other_party_user_id = _read_field(_read_field(booking, "organizer"), "user_id")
    if not other_party_user_id:
        other_party_user_id = _read_field(_read_field(booking, "venue"), "user_id")

    participant_ids: list[int] = []
    for user_id in (artist_user_id, other_party_user_id):
        # A venue manager booking their own resident act holds both roles
        if user_id and user_id not in participant_ids:
            participant_ids.append(user_id)

    name = _read_field(artist, "name") or "Artist"
    return ConversationParticipants(
        participant_ids=participant_ids,
        artist_user_id=artist_user_id or None,
        other_party_user_id=other_party_user_id or None,
        subject=f"Negotiation: {name}",
    )
