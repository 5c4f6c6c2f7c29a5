"""
Election history service.

Builds the ordered list of committed events for an election so callers
can audit the whole run (registrations, proposals, votes, transitions)
without subscribing an observer from the start.
"""
from typing import List, Dict, Any, Optional

from sqlalchemy.orm import Session

from ballotbox.models import EventLog


def get_election_history(
    election_id: str,
    db: Session,
    event_type: Optional[str] = None
) -> List[Dict[str, Any]]:
    """
    Return every EventLog entry of the election, oldest first.

    Each entry carries the event type, its payload and the commit time.
    Pass event_type (e.g. "VOTED") to keep only one kind.
    """
    query = db.query(EventLog).filter(EventLog.election_id == election_id)
    if event_type is not None:
        query = query.filter(EventLog.event_type == event_type)

    history: List[Dict[str, Any]] = []

    for entry in query.order_by(EventLog.id).all():
        history.append({
            "event_type": entry.event_type,
            "data": dict(entry.data or {}),
            "created_at": entry.created_at,
        })

    return history
