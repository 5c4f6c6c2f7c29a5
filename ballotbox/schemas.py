"""
回傳給呼叫端的資料結構（Pydantic）

ORM 物件只活在 session 內；ElectionEngine 在 session 關閉前把它們轉成這些
不可變的紀錄。
"""
from datetime import datetime
from typing import Any, Dict, List

from pydantic import BaseModel

from ballotbox.models import WorkflowStatus


class VoterRecord(BaseModel):
    address: str
    is_registered: bool
    has_voted: bool
    voted_proposal_id: int

    class Config:
        from_attributes = True
        frozen = True


class ProposalRecord(BaseModel):
    proposal_id: int
    description: str
    vote_count: int
    submitter: str

    class Config:
        from_attributes = True
        frozen = True


class ElectionSummary(BaseModel):
    election_id: str
    owner: str
    status: WorkflowStatus
    voter_count: int
    proposal_count: int
    total_votes: int
    winning_proposal_ids: List[int] = []

    class Config:
        frozen = True


class HistoryEntry(BaseModel):
    event_type: str
    data: Dict[str, Any]
    created_at: datetime

    class Config:
        frozen = True
