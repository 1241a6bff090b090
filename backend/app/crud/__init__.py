from . import crud_booking
from . import crud_conversation
from . import crud_message
