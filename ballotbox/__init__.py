"""
ballotbox：選舉 / 投票引擎

owner 登記選民 → 開放提案 → 開放投票 → 計票（平手時所有並列最高票的提案都勝出）
"""
from ballotbox.engine import ElectionEngine
from ballotbox.models import WorkflowStatus
from ballotbox.core.events import (
    ElectionEvent,
    ElectionObserver,
    ProposalRegistered,
    Voted,
    VoterRegistered,
    WorkflowStatusChanged,
)
from ballotbox.core.exceptions import (
    AlreadyRegistered,
    AlreadyVoted,
    BallotBoxException,
    ElectionInvariantError,
    ElectionNotFound,
    EmptyProposal,
    InvalidPhase,
    InvalidStateTransition,
    NotAuthorized,
    NotYetTallied,
    OutOfRange,
)

__version__ = "1.0.0"

__all__ = [
    "ElectionEngine",
    "WorkflowStatus",
    "ElectionEvent",
    "ElectionObserver",
    "ProposalRegistered",
    "Voted",
    "VoterRegistered",
    "WorkflowStatusChanged",
    "AlreadyRegistered",
    "AlreadyVoted",
    "BallotBoxException",
    "ElectionInvariantError",
    "ElectionNotFound",
    "EmptyProposal",
    "InvalidPhase",
    "InvalidStateTransition",
    "NotAuthorized",
    "NotYetTallied",
    "OutOfRange",
]
