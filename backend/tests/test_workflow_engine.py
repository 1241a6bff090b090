from decimal import Decimal

import pytest

from app.services.workflow_engine import compute_workflow_transition
from app.services.workflow_types import (
    WorkflowAction,
    WorkflowActionKey,
    WorkflowError,
    WorkflowErrorKind,
    WorkflowInstanceState,
    WorkflowTransitionResult,
)

ARTIST = 7
ORGANIZER = 42
ALL_ACTIONS = ["PROPOSE_CHANGE", "ACCEPT", "DECLINE"]


def make_instance(**overrides):
    fields = dict(
        current_node_key="AWAITING_ARTIST",
        awaiting_user_id=ARTIST,
        round=1,
        max_rounds=3,
        locked=False,
        context={},
    )
    fields.update(overrides)
    return WorkflowInstanceState(**fields)


def test_counter_proposal_example():
    result = compute_workflow_transition(
        make_instance(),
        WorkflowAction(user_id=ARTIST, action_key="PROPOSE_CHANGE", payload={"offerAmount": 15000}),
        ORGANIZER,
    )
    assert isinstance(result, WorkflowTransitionResult)
    assert result.next_node_key == "AWAITING_ORGANIZER"
    assert result.next_awaiting_user_id == ORGANIZER
    assert result.new_round == 2
    assert result.should_lock is False
    assert result.booking_offer_amount_update == 15000
    assert result.booking_status_update is None
    assert result.message.action_key == "PROPOSE_CHANGE"
    assert result.message.round == 1
    assert result.system_message is None


def test_max_rounds_example_still_allows_accept():
    instance = make_instance(round=3, max_rounds=3)
    rejected = compute_workflow_transition(
        instance,
        WorkflowAction(user_id=ARTIST, action_key="PROPOSE_CHANGE", payload={"offerAmount": 1}),
        ORGANIZER,
    )
    assert rejected == WorkflowError(
        "Max rounds reached. Must Accept or Decline.", WorkflowErrorKind.MAX_ROUNDS
    )

    accepted = compute_workflow_transition(
        instance, WorkflowAction(user_id=ARTIST, action_key="ACCEPT"), ORGANIZER
    )
    assert accepted.next_node_key == "ACCEPTED"
    assert accepted.booking_status_update == "contracting"
    assert accepted.should_lock is True


@pytest.mark.parametrize("action_key", ALL_ACTIONS)
@pytest.mark.parametrize("user_id", [ORGANIZER, 1, 99999])
def test_only_the_awaiting_user_may_act(action_key, user_id):
    result = compute_workflow_transition(
        make_instance(), WorkflowAction(user_id=user_id, action_key=action_key), ORGANIZER
    )
    assert isinstance(result, WorkflowError)
    assert result.kind is WorkflowErrorKind.TURN
    assert result.error == f"Not your turn. Awaiting user {ARTIST}"


@pytest.mark.parametrize("action_key", ALL_ACTIONS)
def test_awaiting_user_never_gets_turn_error(action_key):
    result = compute_workflow_transition(
        make_instance(round=0), WorkflowAction(user_id=ARTIST, action_key=action_key), ORGANIZER
    )
    assert not isinstance(result, WorkflowError)


@pytest.mark.parametrize("round_", [0, 1, 2])
@pytest.mark.parametrize(
    "node, expected_next",
    [
        ("AWAITING_ARTIST", "AWAITING_ORGANIZER"),
        ("AWAITING_ORGANIZER", "AWAITING_ARTIST"),
        ("WAITING_FIRST_MOVE", "AWAITING_ARTIST"),
    ],
)
def test_proposal_increments_round_and_toggles_node(round_, node, expected_next):
    result = compute_workflow_transition(
        make_instance(round=round_, current_node_key=node),
        WorkflowAction(user_id=ARTIST, action_key=WorkflowActionKey.PROPOSE_CHANGE),
        ORGANIZER,
    )
    assert result.new_round == round_ + 1
    assert result.next_node_key == expected_next
    assert result.next_awaiting_user_id == ORGANIZER
    assert result.should_lock is False


@pytest.mark.parametrize("round_, max_rounds", [(3, 3), (5, 3), (1, 1), (0, 0), (10, 10)])
def test_proposal_rejected_at_ceiling_but_terminal_moves_succeed(round_, max_rounds):
    instance = make_instance(round=round_, max_rounds=max_rounds)
    proposal = compute_workflow_transition(
        instance, WorkflowAction(user_id=ARTIST, action_key="PROPOSE_CHANGE"), ORGANIZER
    )
    assert isinstance(proposal, WorkflowError)
    assert proposal.kind is WorkflowErrorKind.MAX_ROUNDS

    for key in ("ACCEPT", "DECLINE"):
        result = compute_workflow_transition(
            instance, WorkflowAction(user_id=ARTIST, action_key=key), ORGANIZER
        )
        assert isinstance(result, WorkflowTransitionResult)
        assert result.new_round == round_


def test_higher_ceiling_allows_more_rounds():
    result = compute_workflow_transition(
        make_instance(round=3, max_rounds=5),
        WorkflowAction(user_id=ARTIST, action_key="PROPOSE_CHANGE"),
        ORGANIZER,
    )
    assert result.new_round == 4


@pytest.mark.parametrize("round_", [0, 2, 3])
def test_accept_locks_and_flags_contracting(round_):
    result = compute_workflow_transition(
        make_instance(round=round_), WorkflowAction(user_id=ARTIST, action_key="ACCEPT"), ORGANIZER
    )
    assert result.next_node_key == "ACCEPTED"
    assert result.booking_status_update == "contracting"
    assert result.booking_status_update != "confirmed"
    assert result.should_lock is True
    assert result.next_awaiting_user_id is None
    assert result.new_round == round_
    assert result.booking_offer_amount_update is None
    assert result.system_message.body == "Negotiation accepted."
    assert result.system_message.workflow_node_key == "ACCEPTED"


@pytest.mark.parametrize("round_", [0, 2, 3])
def test_decline_locks_and_cancels(round_):
    result = compute_workflow_transition(
        make_instance(round=round_), WorkflowAction(user_id=ARTIST, action_key="DECLINE"), ORGANIZER
    )
    assert result.next_node_key == "DECLINED"
    assert result.booking_status_update == "cancelled"
    assert result.should_lock is True
    assert result.next_awaiting_user_id is None
    assert result.new_round == round_
    assert result.booking_offer_amount_update is None
    assert result.system_message.body == "Negotiation declined."


@pytest.mark.parametrize("action_key", ALL_ACTIONS + ["BOGUS"])
@pytest.mark.parametrize("user_id", [ARTIST, ORGANIZER, None])
@pytest.mark.parametrize("node", ["ACCEPTED", "DECLINED", "AWAITING_ARTIST"])
def test_locked_instance_rejects_everything_first(action_key, user_id, node):
    instance = make_instance(locked=True, awaiting_user_id=None, current_node_key=node, round=3)
    result = compute_workflow_transition(
        instance, WorkflowAction(user_id=user_id, action_key=action_key), ORGANIZER
    )
    assert result == WorkflowError("Workflow is locked", WorkflowErrorKind.LOCKED)


def test_retrying_accept_against_accepted_state_is_rejected():
    instance = make_instance()
    first = compute_workflow_transition(
        instance, WorkflowAction(user_id=ARTIST, action_key="ACCEPT"), ORGANIZER
    )
    after = make_instance(
        current_node_key=first.next_node_key,
        awaiting_user_id=first.next_awaiting_user_id,
        round=first.new_round,
        locked=first.should_lock,
    )
    retry = compute_workflow_transition(
        after, WorkflowAction(user_id=ARTIST, action_key="ACCEPT"), ORGANIZER
    )
    assert isinstance(retry, WorkflowError)
    assert retry.error == "Workflow is locked"


def test_turn_is_checked_before_action_key():
    result = compute_workflow_transition(
        make_instance(), WorkflowAction(user_id=ORGANIZER, action_key="BOGUS"), ARTIST
    )
    assert result.kind is WorkflowErrorKind.TURN


def test_unknown_action_from_awaiting_user():
    result = compute_workflow_transition(
        make_instance(), WorkflowAction(user_id=ARTIST, action_key="ASK_PRESET_QUESTION"), ORGANIZER
    )
    assert result == WorkflowError("Invalid action", WorkflowErrorKind.INVALID_ACTION)


@pytest.mark.parametrize("action_key", ALL_ACTIONS)
def test_action_message_records_state_before_transition(action_key):
    instance = make_instance(round=2, current_node_key="AWAITING_ARTIST")
    payload = {"note": "Can we do an earlier slot?"}
    result = compute_workflow_transition(
        instance, WorkflowAction(user_id=ARTIST, action_key=action_key, payload=payload), ORGANIZER
    )
    message = result.message
    assert message.message_type == "action"
    assert message.action_key == action_key
    assert message.sender_id == ARTIST
    assert message.round == 2
    assert message.workflow_node_key == "AWAITING_ARTIST"
    assert message.payload == {"note": "Can we do an earlier slot?", "proposalId": None}
    # the submitted payload is left untouched
    assert payload == {"note": "Can we do an earlier slot?"}
    if action_key == "PROPOSE_CHANGE":
        assert result.system_message is None
    else:
        assert result.system_message is not None
        assert result.system_message.sender_id is None
        assert result.system_message.message_type == "system"


@pytest.mark.parametrize(
    "payload, expected",
    [
        ({"offerAmount": 15000}, 15000),
        ({"offerAmount": 0}, 0),
        ({"offerAmount": 999.5}, 999.5),
        ({"offerAmount": Decimal("1200.00")}, Decimal("1200.00")),
        ({"note": "no amount"}, None),
        ({}, None),
        (None, None),
        ({"offerAmount": "15000"}, None),
        ({"offerAmount": True}, None),
        ({"offerAmount": float("nan")}, None),
        ({"offerAmount": float("inf")}, None),
        ({"offerAmount": float("-inf")}, None),
        ({"offerAmount": Decimal("NaN")}, None),
        ({"offerAmount": Decimal("Infinity")}, None),
    ],
)
def test_offer_amount_directive(payload, expected):
    result = compute_workflow_transition(
        make_instance(),
        WorkflowAction(user_id=ARTIST, action_key="PROPOSE_CHANGE", payload=payload),
        ORGANIZER,
    )
    assert result.booking_offer_amount_update == expected


@pytest.mark.parametrize("action_key", ["ACCEPT", "DECLINE"])
def test_terminal_moves_ignore_offer_amount(action_key):
    result = compute_workflow_transition(
        make_instance(),
        WorkflowAction(user_id=ARTIST, action_key=action_key, payload={"offerAmount": 500}),
        ORGANIZER,
    )
    assert result.booking_offer_amount_update is None


def test_same_input_gives_same_result():
    instance = make_instance()
    action = WorkflowAction(user_id=ARTIST, action_key="PROPOSE_CHANGE", payload={"offerAmount": 10})
    assert compute_workflow_transition(instance, action, ORGANIZER) == compute_workflow_transition(
        instance, action, ORGANIZER
    )
    # the input snapshot is not mutated
    assert instance == make_instance()
