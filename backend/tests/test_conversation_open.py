from app.core.config import settings
from app.services.conversation_open import (
    NEGOTIATION,
    build_initial_workflow_state,
    should_return_existing,
)


def test_existing_conversation_is_returned():
    assert should_return_existing(object()) is True
    assert should_return_existing(None) is False


def test_negotiation_initial_state():
    state = build_initial_workflow_state(NEGOTIATION)
    assert state.workflow_key == "booking_negotiation_v1"
    assert state.current_node_key == "WAITING_FIRST_MOVE"
    assert state.round == 0
    assert state.max_rounds == settings.NEGOTIATION_MAX_ROUNDS
    assert state.locked is False
    assert state.context == {}


def test_max_rounds_override():
    assert build_initial_workflow_state(NEGOTIATION, max_rounds=5).max_rounds == 5
    assert build_initial_workflow_state(NEGOTIATION, max_rounds=0).max_rounds == 0


def test_default_max_rounds_follows_settings(monkeypatch):
    monkeypatch.setattr(settings, "NEGOTIATION_MAX_ROUNDS", 6)
    assert build_initial_workflow_state(NEGOTIATION).max_rounds == 6


def test_other_conversation_types_have_no_workflow():
    assert build_initial_workflow_state("direct") is None
    assert build_initial_workflow_state("support") is None
