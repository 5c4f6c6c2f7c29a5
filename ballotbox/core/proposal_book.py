"""
Proposal Book：管理提案

職責：
1. 新增提案（只有已登記選民，只在 PROPOSALS_REGISTRATION_STARTED 階段）
2. 依 proposal_id 查詢提案

proposal_id 規則：
- 每個選舉內從 0 開始，依提交順序連續編號
- 不會重複使用，也不會重新排序
"""
from typing import List

from sqlalchemy.orm import Session
import logging

from ballotbox.models import Proposal
from ballotbox.core.events import ProposalRegistered, record_event
from ballotbox.core.exceptions import ElectionNotFound, EmptyProposal, OutOfRange
from ballotbox.core.locks import with_election_lock
from ballotbox.core.state_machine import WorkflowStateMachine
from ballotbox.services.access_service import require_voter
from ballotbox.database import transactional

logger = logging.getLogger(__name__)


class ProposalBook:
    """提案簿"""

    @staticmethod
    @transactional
    def add_proposal(db: Session, election_id: str, caller: str, description: str) -> Proposal:
        """
        新增提案

        前置條件（依序檢查）：
        1. caller 必須是已登記選民
        2. 階段必須是 PROPOSALS_REGISTRATION_STARTED
        3. description 去掉空白後不能是空字串

        流程：
        1. 鎖定 Election（確保 proposal_id 分配不會競爭）
        2. 下一個 proposal_id = 目前提案數量
        3. 建立 Proposal（vote_count = 0）並記錄事件

        返回：
            新的 Proposal

        異常：
            NotAuthorized / InvalidPhase / EmptyProposal
        """
        election = with_election_lock(election_id, db).first()
        if not election:
            raise ElectionNotFound(election_id)

        require_voter(election_id, caller, db)
        WorkflowStateMachine.require_phase(election, "add_proposal")

        if description is None or not description.strip():
            raise EmptyProposal()

        next_id = ProposalBook.count_proposals(db, election_id)
        proposal = Proposal(
            election_id=election_id,
            proposal_id=next_id,
            description=description,
            vote_count=0,
            submitter=caller
        )
        db.add(proposal)
        db.flush()

        record_event(db, ProposalRegistered(
            election_id=election_id,
            proposal_id=next_id,
            submitter=caller
        ))

        logger.info(f"Proposal {next_id} registered by {caller} in election {election_id}")
        return proposal

    @staticmethod
    def get_one_proposal(db: Session, election_id: str, caller: str, proposal_id: int) -> Proposal:
        """
        查詢單一提案

        異常：
            NotAuthorized: caller 不是已登記選民
            OutOfRange: proposal_id 不存在
        """
        require_voter(election_id, caller, db)
        return ProposalBook.find_proposal(db, election_id, proposal_id)

    @staticmethod
    def list_proposals(db: Session, election_id: str, caller: str) -> List[Proposal]:
        """列出所有提案（proposal_id 升冪），只有已登記選民可以查詢"""
        require_voter(election_id, caller, db)
        return db.query(Proposal).filter(
            Proposal.election_id == election_id
        ).order_by(Proposal.proposal_id).all()

    @staticmethod
    def find_proposal(db: Session, election_id: str, proposal_id: int) -> Proposal:
        """不檢查權限的查詢；proposal_id 超出範圍時拋出 OutOfRange"""
        if isinstance(proposal_id, bool) or not isinstance(proposal_id, int) or proposal_id < 0:
            raise OutOfRange(proposal_id)

        proposal = db.query(Proposal).filter(
            Proposal.election_id == election_id,
            Proposal.proposal_id == proposal_id
        ).first()
        if not proposal:
            raise OutOfRange(proposal_id)
        return proposal

    @staticmethod
    def count_proposals(db: Session, election_id: str) -> int:
        return db.query(Proposal).filter(Proposal.election_id == election_id).count()
