import pytest

from ballotbox import (
    AlreadyRegistered,
    ElectionInvariantError,
    WorkflowStatus,
    WorkflowStatusChanged,
)
from ballotbox.core.events import EventDispatcher, VoterRegistered
from ballotbox.models import Proposal

from conftest import OWNER, VOTER, VOTER2


def test_events_follow_application_order(voting_election, observer):
    voting_election.set_vote(VOTER2, 1)

    assert observer.types() == [
        "VOTER_REGISTERED",
        "VOTER_REGISTERED",
        "WORKFLOW_STATUS_CHANGED",
        "PROPOSAL_REGISTERED",
        "PROPOSAL_REGISTERED",
        "WORKFLOW_STATUS_CHANGED",
        "WORKFLOW_STATUS_CHANGED",
        "VOTED",
    ]
    assert [e.voter_address for e in observer.events[:2]] == [VOTER, VOTER2]
    assert [e.proposal_id for e in observer.events[3:5]] == [0, 1]


def test_history_mirrors_notifications(voting_election, observer):
    voting_election.set_vote(VOTER, 0)

    history = voting_election.history()
    assert [entry.event_type for entry in history] == observer.types()
    assert history[2].data == {
        "previous_status": "REGISTERING_VOTERS",
        "new_status": "PROPOSALS_REGISTRATION_STARTED",
    }

    votes = voting_election.history(event_type="VOTED")
    assert [entry.data for entry in votes] == [{"voter": VOTER, "proposal_id": 0}]


def test_callable_observer_and_unsubscribe(election):
    seen = []
    election.subscribe(seen.append)

    election.add_voter(OWNER, VOTER)
    election.unsubscribe(seen.append)
    election.add_voter(OWNER, VOTER2)

    assert [e.voter_address for e in seen] == [VOTER]


def test_failed_operation_emits_nothing(election, observer):
    election.add_voter(OWNER, VOTER)
    with pytest.raises(AlreadyRegistered):
        election.add_voter(OWNER, VOTER)

    assert observer.types() == ["VOTER_REGISTERED"]
    assert len(election.history()) == 1


def test_failing_observer_does_not_fail_the_operation(voting_election):
    def broken(event):
        raise RuntimeError("sink down")

    seen = []
    voting_election.subscribe(broken)
    voting_election.subscribe(seen.append)

    record = voting_election.set_vote(VOTER, 0)

    assert record.vote_count == 1
    assert [(e.voter, e.proposal_id) for e in seen] == [(VOTER, 0)]
    assert voting_election.get_voter(VOTER, VOTER).has_voted is True


def test_dispatcher_counts_failed_notifications():
    dispatcher = EventDispatcher()
    received = []

    def broken(event):
        raise RuntimeError("sink down")

    dispatcher.subscribe(broken)
    dispatcher.subscribe(received.append)
    events = [VoterRegistered(election_id="e", voter_address=a) for a in (VOTER, VOTER2)]

    assert dispatcher.publish(events) == 2
    assert received == events


def test_broken_invariant_rolls_back_tally(voting_election, observer, session_factory):
    voting_election.set_vote(VOTER, 0)
    voting_election.end_voting_session(OWNER)

    # corrupt the counter behind the engine's back
    db = session_factory()
    try:
        proposal = db.query(Proposal).filter(
            Proposal.election_id == voting_election.election_id,
            Proposal.proposal_id == 1
        ).one()
        proposal.vote_count = 5
        db.commit()
    finally:
        db.close()

    before = len(observer.events)
    with pytest.raises(ElectionInvariantError):
        voting_election.tally_votes_draw(OWNER)

    assert voting_election.workflow_status() == WorkflowStatus.VOTING_SESSION_ENDED
    assert len(observer.events) == before
    assert not any(
        isinstance(e, WorkflowStatusChanged) and e.new_status == WorkflowStatus.VOTES_TALLIED
        for e in observer.events
    )
