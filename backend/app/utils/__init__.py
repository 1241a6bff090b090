from .errors import error_response
from .messages import (
    build_system_message,
    check_free_text_allowed,
    is_participant,
    sort_messages_chronologically,
)
