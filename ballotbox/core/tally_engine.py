"""
Tally Engine：投票與 draw-aware 計票

職責：
1. 投票（唯一會修改 vote_count 的地方）
2. 計票：找出所有並列最高票的提案，存回 Election
3. 查詢勝出提案

不變量：
- 所有提案的 vote_count 總和 == has_voted 的選民數
- 每個選民最多投一票
"""
from typing import List

from sqlalchemy.orm import Session
import logging

from ballotbox.models import Election, Proposal, WorkflowStatus
from ballotbox.core.events import Voted, record_event
from ballotbox.core.exceptions import (
    AlreadyVoted,
    ElectionInvariantError,
    ElectionNotFound,
    NotYetTallied,
    OutOfRange,
)
from ballotbox.core.locks import with_election_lock, with_proposal_lock
from ballotbox.core.state_machine import WorkflowStateMachine
from ballotbox.core.voter_registry import VoterRegistry
from ballotbox.services.access_service import require_voter
from ballotbox.services.tally_service import compute_winning_ids, total_votes
from ballotbox.database import transactional

logger = logging.getLogger(__name__)


class TallyEngine:
    """投票與計票"""

    @staticmethod
    @transactional
    def set_vote(db: Session, election_id: str, caller: str, proposal_id: int) -> Proposal:
        """
        投票

        前置條件（依序檢查）：
        1. caller 必須是已登記選民
        2. 階段必須是 VOTING_SESSION_STARTED
        3. caller 尚未投票
        4. proposal_id 存在

        效果：
        - 目標提案 vote_count + 1
        - caller.has_voted = True, caller.voted_proposal_id = proposal_id
        - 記錄 Voted 事件

        返回：
            更新後的 Proposal

        異常：
            NotAuthorized / InvalidPhase / AlreadyVoted / OutOfRange
        """
        election = with_election_lock(election_id, db).first()
        if not election:
            raise ElectionNotFound(election_id)

        voter = require_voter(election_id, caller, db)
        WorkflowStateMachine.require_phase(election, "set_vote")

        if voter.has_voted:
            logger.warning(f"Voter {caller} tried to vote twice in election {election_id}")
            raise AlreadyVoted()

        if isinstance(proposal_id, bool) or not isinstance(proposal_id, int):
            raise OutOfRange(proposal_id)
        proposal = with_proposal_lock(election_id, proposal_id, db).first()
        if not proposal:
            raise OutOfRange(proposal_id)

        proposal.vote_count += 1
        voter.has_voted = True
        voter.voted_proposal_id = proposal_id
        db.flush()

        record_event(db, Voted(election_id=election_id, voter=caller, proposal_id=proposal_id))

        logger.info(f"Voter {caller} voted for proposal {proposal_id} in election {election_id}")
        return proposal

    @staticmethod
    def tally(db: Session, election: Election) -> List[int]:
        """
        計算並儲存勝出提案

        邏輯：
        1. 讀取所有提案的 (proposal_id, vote_count)
        2. 檢查票數守恆（總票數 == 已投票選民數）
        3. 所有並列最高票的提案都是勝出者，依 proposal_id 升冪

        參數：
            db: SQLAlchemy Session
            election: 已鎖定的 Election

        返回：
            勝出提案的 proposal_id 列表（沒有提案時為空列表）

        注意：
            - 不檢查權限與階段，由 ElectionManager.tally_votes_draw() 負責
            - 不會 commit，由外層 transaction 處理
        """
        rows = db.query(Proposal.proposal_id, Proposal.vote_count).filter(
            Proposal.election_id == election.id
        ).all()
        vote_counts = [(proposal_id, count) for proposal_id, count in rows]

        voted = VoterRegistry.count_voters(db, election.id, voted_only=True)
        counted = total_votes(vote_counts)
        if counted != voted:
            raise ElectionInvariantError(
                f"Election {election.id}: {counted} votes counted but {voted} voters have voted"
            )

        winners = compute_winning_ids(vote_counts)
        election.winning_proposal_ids = winners
        db.flush()
        return winners

    @staticmethod
    def get_winner(db: Session, election_id: str) -> List[Proposal]:
        """
        取得勝出提案（平手時有多個）

        返回：
            Proposal 列表，依 proposal_id 升冪

        異常：
            NotYetTallied: 選舉尚未到達 VOTES_TALLIED
        """
        election = db.query(Election).filter(Election.id == election_id).first()
        if not election:
            raise ElectionNotFound(election_id)

        if WorkflowStatus(election.status) != WorkflowStatus.VOTES_TALLIED or election.winning_proposal_ids is None:
            raise NotYetTallied()

        winning_ids = list(election.winning_proposal_ids)
        if not winning_ids:
            return []

        return db.query(Proposal).filter(
            Proposal.election_id == election_id,
            Proposal.proposal_id.in_(winning_ids)
        ).order_by(Proposal.proposal_id).all()
