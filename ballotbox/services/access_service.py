"""
Access service: capability predicates for the two caller roles.

- owner: the administrative authority stored on the Election row
- registered voter: any identity with a Voter row in the election
"""
from typing import Optional

from sqlalchemy.orm import Session

from ballotbox.core.exceptions import NotAuthorized
from ballotbox.models import Election, Voter

OWNER_REQUIRED = "Ownable: caller is not the owner"
VOTER_REQUIRED = "You're not a voter"


def is_owner(election: Election, caller: str) -> bool:
    return caller is not None and election.owner == caller


def find_voter(election_id: str, address: str, db: Session) -> Optional[Voter]:
    return db.query(Voter).filter(
        Voter.election_id == election_id,
        Voter.address == address
    ).first()


def is_registered_voter(election_id: str, caller: str, db: Session) -> bool:
    voter = find_voter(election_id, caller, db)
    return voter is not None and voter.is_registered


def require_owner(election: Election, caller: str) -> None:
    """Raise NotAuthorized unless caller is the election owner."""
    if not is_owner(election, caller):
        raise NotAuthorized(OWNER_REQUIRED)


def require_voter(election_id: str, caller: str, db: Session) -> Voter:
    """
    Raise NotAuthorized unless caller is a registered voter.

    Returns the caller's own Voter row so callers that go on to mutate it
    (set_vote) don't need a second lookup.
    """
    voter = find_voter(election_id, caller, db)
    if voter is None or not voter.is_registered:
        raise NotAuthorized(VOTER_REQUIRED)
    return voter
