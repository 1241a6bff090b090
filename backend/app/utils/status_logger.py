import logging
from sqlalchemy import event
from sqlalchemy.orm.attributes import NO_VALUE

from .. import models

logger = logging.getLogger(__name__)

_registered = False


def _listener_factory(model_name: str, attribute: str):
    """Return a SQLAlchemy attribute listener that logs value changes."""

    def _changed(target, value, oldvalue, initiator):  # noqa: ANN001
        if oldvalue is NO_VALUE or oldvalue == value:
            return value
        entity_id = getattr(target, "id", None) or getattr(target, "conversation_id", "unknown")
        logger.info(
            "%s id=%s %s changed from %s to %s",
            model_name,
            entity_id,
            attribute,
            getattr(oldvalue, "value", oldvalue),
            getattr(value, "value", value),
        )
        return value

    return _changed


def register_status_listeners() -> None:
    """Log booking status and negotiation node changes. Safe to call twice."""
    global _registered
    if _registered:
        return
    for model, attribute in (
        (models.Booking, "status"),
        (models.ConversationWorkflowInstance, "current_node_key"),
    ):
        event.listen(
            getattr(model, attribute),
            "set",
            _listener_factory(model.__name__, attribute),
            retval=False,
            propagate=True,
        )
    _registered = True
