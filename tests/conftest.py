import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from ballotbox import ElectionEngine, WorkflowStatus
from ballotbox.database import init_db

OWNER = "0xOwner"
VOTER = "0xVoter1"
VOTER2 = "0xVoter2"
PLEB = "0xPleb"

TRANSITIONS = {
    WorkflowStatus.PROPOSALS_REGISTRATION_STARTED: "start_proposals_registering",
    WorkflowStatus.PROPOSALS_REGISTRATION_ENDED: "end_proposals_registering",
    WorkflowStatus.VOTING_SESSION_STARTED: "start_voting_session",
    WorkflowStatus.VOTING_SESSION_ENDED: "end_voting_session",
    WorkflowStatus.VOTES_TALLIED: "tally_votes_draw",
}


class RecordingObserver:
    def __init__(self):
        self.events = []

    def notify(self, event):
        self.events.append(event)

    def types(self):
        return [event.event_type for event in self.events]


def advance_to(election, status):
    """Drive the election forward as the owner until it reaches status."""
    while election.workflow_status() < status:
        target = WorkflowStatus(election.workflow_status() + 1)
        getattr(election, TRANSITIONS[target])(OWNER)


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'ballotbox.db'}",
        connect_args={"check_same_thread": False}
    )
    init_db(engine)
    yield sessionmaker(autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def observer():
    return RecordingObserver()


@pytest.fixture
def election(session_factory, observer):
    return ElectionEngine.create(OWNER, session_factory=session_factory, observers=[observer])


@pytest.fixture
def voting_election(election):
    """Two voters, two proposals, voting session open."""
    election.add_voter(OWNER, VOTER)
    election.add_voter(OWNER, VOTER2)
    election.start_proposals_registering(OWNER)
    election.add_proposal(VOTER, "ban aurore lalucq from Twitter")
    election.add_proposal(VOTER, "definitely rate this exercise with a A grade")
    election.end_proposals_registering(OWNER)
    election.start_voting_session(OWNER)
    return election
