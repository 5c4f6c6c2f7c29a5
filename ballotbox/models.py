"""
資料模型（SQLAlchemy ORM）

ElectionState 由以下資料表組成：
- Election：選舉本身（owner、目前的 WorkflowStatus、計票結果）
- Voter：登記的選民
- Proposal：提案（每個選舉內從 0 開始連續編號）
- EventLog：所有已提交事件的稽核紀錄
"""
import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ballotbox.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkflowStatus(enum.IntEnum):
    """選舉流程階段，只能依序往前推進"""
    REGISTERING_VOTERS = 0
    PROPOSALS_REGISTRATION_STARTED = 1
    PROPOSALS_REGISTRATION_ENDED = 2
    VOTING_SESSION_STARTED = 3
    VOTING_SESSION_ENDED = 4
    VOTES_TALLIED = 5


class Election(Base):
    __tablename__ = "elections"

    id = Column(String(36), primary_key=True, default=_new_id)
    owner = Column(String(255), nullable=False)
    status = Column(Enum(WorkflowStatus), nullable=False, default=WorkflowStatus.REGISTERING_VOTERS)
    # 計票前為 NULL；計票後為升冪排序的 proposal_id 列表
    winning_proposal_ids = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    voters = relationship("Voter", back_populates="election")
    proposals = relationship(
        "Proposal", back_populates="election", order_by="Proposal.proposal_id"
    )


class Voter(Base):
    __tablename__ = "voters"
    __table_args__ = (
        UniqueConstraint("election_id", "address", name="uq_voter_election_address"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    election_id = Column(String(36), ForeignKey("elections.id"), nullable=False, index=True)
    address = Column(String(255), nullable=False)
    is_registered = Column(Boolean, nullable=False, default=True)
    has_voted = Column(Boolean, nullable=False, default=False)
    voted_proposal_id = Column(Integer, nullable=False, default=0)
    registered_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    election = relationship("Election", back_populates="voters")


class Proposal(Base):
    __tablename__ = "proposals"
    __table_args__ = (
        UniqueConstraint("election_id", "proposal_id", name="uq_proposal_election_seq"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    election_id = Column(String(36), ForeignKey("elections.id"), nullable=False, index=True)
    proposal_id = Column(Integer, nullable=False)
    description = Column(Text, nullable=False)
    vote_count = Column(Integer, nullable=False, default=0)
    submitter = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    election = relationship("Election", back_populates="proposals")


class EventLog(Base):
    __tablename__ = "event_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    election_id = Column(String(36), ForeignKey("elections.id"), nullable=False, index=True)
    event_type = Column(String(64), nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
