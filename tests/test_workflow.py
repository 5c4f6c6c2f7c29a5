import pytest

from ballotbox import (
    ElectionEngine,
    ElectionNotFound,
    InvalidPhase,
    InvalidStateTransition,
    NotAuthorized,
    WorkflowStatus,
)

from conftest import OWNER, PLEB, TRANSITIONS, advance_to


def test_new_election_starts_registering_voters(election):
    assert election.workflow_status() == WorkflowStatus.REGISTERING_VOTERS
    assert int(election.workflow_status()) == 0


def test_owner_walks_through_every_phase_in_order(election):
    for target, operation in TRANSITIONS.items():
        getattr(election, operation)(OWNER)
        assert election.workflow_status() == target


def test_transitions_return_new_status_and_tally_returns_winners(election):
    for target, operation in list(TRANSITIONS.items())[:-1]:
        assert getattr(election, operation)(OWNER) == target

    # no proposals: the winner set is empty
    assert election.tally_votes_draw(OWNER) == []
    assert election.workflow_status() == WorkflowStatus.VOTES_TALLIED


@pytest.mark.parametrize("target,operation", list(TRANSITIONS.items()))
def test_transition_requires_owner(election, target, operation):
    advance_to(election, WorkflowStatus(target - 1))
    before = election.workflow_status()

    with pytest.raises(NotAuthorized) as exc:
        getattr(election, operation)(PLEB)

    assert exc.value.kind == "NotAuthorized"
    assert str(exc.value) == "Ownable: caller is not the owner"
    assert election.workflow_status() == before


ILLEGAL = [
    (target, operation, current)
    for target, operation in TRANSITIONS.items()
    for current in WorkflowStatus
    if current != target - 1
]


@pytest.mark.parametrize("target,operation,current", ILLEGAL)
def test_transition_only_from_its_single_prior_status(session_factory, target, operation, current):
    election = ElectionEngine.create(OWNER, session_factory=session_factory)
    advance_to(election, current)

    with pytest.raises(InvalidPhase) as exc:
        getattr(election, operation)(OWNER)

    assert isinstance(exc.value, InvalidStateTransition)
    assert exc.value.kind == "InvalidPhase"
    assert election.workflow_status() == current


def test_repeating_a_transition_fails_the_second_time(election):
    election.start_proposals_registering(OWNER)
    with pytest.raises(InvalidPhase):
        election.start_proposals_registering(OWNER)
    assert election.workflow_status() == WorkflowStatus.PROPOSALS_REGISTRATION_STARTED


def test_non_owner_is_rejected_even_in_the_wrong_phase(voting_election):
    # still VOTING_SESSION_STARTED: both checks would fail, ownership is reported
    with pytest.raises(NotAuthorized):
        voting_election.tally_votes_draw(PLEB)


def test_tally_in_voting_session_reports_status_reason(voting_election):
    with pytest.raises(InvalidPhase) as exc:
        voting_election.tally_votes_draw(OWNER)
    assert exc.value.reason == "Current status is not voting session ended"


def test_status_changes_are_notified_with_previous_and_next(election, observer):
    advance_to(election, WorkflowStatus.VOTES_TALLIED)

    changes = [(e.previous_status, e.new_status) for e in observer.events]
    assert changes == [
        (WorkflowStatus(i), WorkflowStatus(i + 1)) for i in range(5)
    ]


def test_engine_for_unknown_election(session_factory):
    with pytest.raises(ElectionNotFound):
        ElectionEngine("does-not-exist", session_factory=session_factory)


def test_second_engine_sees_same_election(session_factory, election):
    election.start_proposals_registering(OWNER)

    other = ElectionEngine(election.election_id, session_factory=session_factory)
    assert other.workflow_status() == WorkflowStatus.PROPOSALS_REGISTRATION_STARTED


def test_create_requires_owner(session_factory):
    with pytest.raises(ValueError):
        ElectionEngine.create("", session_factory=session_factory)
