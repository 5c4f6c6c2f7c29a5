"""
Voter Registry：管理選民登記

職責：
1. 登記選民（只有 owner，只在 REGISTERING_VOTERS 階段，每個身分只能一次）
2. 查詢選民（只有已登記選民可以查詢）

選民一旦登記就不會被刪除；投票時由 TallyEngine 更新 has_voted。
"""
from sqlalchemy.orm import Session
import logging

from ballotbox.models import Voter
from ballotbox.core.events import VoterRegistered, record_event
from ballotbox.core.exceptions import AlreadyRegistered, ElectionNotFound
from ballotbox.core.locks import with_election_lock
from ballotbox.core.state_machine import WorkflowStateMachine
from ballotbox.services.access_service import find_voter, require_owner, require_voter
from ballotbox.database import transactional

logger = logging.getLogger(__name__)


class VoterRegistry:
    """選民登記簿"""

    @staticmethod
    @transactional
    def add_voter(db: Session, election_id: str, caller: str, address: str) -> Voter:
        """
        登記選民

        前置條件（依序檢查）：
        1. caller 必須是 owner
        2. 階段必須是 REGISTERING_VOTERS
        3. address 尚未登記

        參數：
            db: SQLAlchemy Session
            election_id: Election UUID
            caller: 呼叫者身分
            address: 要登記的選民身分

        返回：
            新的 Voter

        異常：
            NotAuthorized / InvalidPhase / AlreadyRegistered
        """
        election = with_election_lock(election_id, db).first()
        if not election:
            raise ElectionNotFound(election_id)

        require_owner(election, caller)
        WorkflowStateMachine.require_phase(election, "add_voter")

        if not address:
            raise ValueError("Voter address must be a non-empty identity")

        if find_voter(election_id, address, db) is not None:
            logger.warning(f"Voter {address} already registered in election {election_id}")
            raise AlreadyRegistered()

        voter = Voter(
            election_id=election_id,
            address=address,
            is_registered=True,
            has_voted=False,
            voted_proposal_id=0
        )
        db.add(voter)
        db.flush()

        record_event(db, VoterRegistered(election_id=election_id, voter_address=address))

        logger.info(f"Registered voter {address} in election {election_id}")
        return voter

    @staticmethod
    def get_voter(db: Session, election_id: str, caller: str, address: str) -> Voter:
        """
        查詢選民

        前置條件：
            caller 必須是已登記選民（不公開給外部）

        返回：
            Voter；address 從未登記時返回一個未存入 DB 的零值 Voter
            （is_registered=False, has_voted=False, voted_proposal_id=0）

        異常：
            NotAuthorized: caller 不是已登記選民
        """
        require_voter(election_id, caller, db)

        voter = find_voter(election_id, address, db)
        if voter is None:
            return Voter(
                election_id=election_id,
                address=address,
                is_registered=False,
                has_voted=False,
                voted_proposal_id=0
            )
        return voter

    @staticmethod
    def count_voters(db: Session, election_id: str, voted_only: bool = False) -> int:
        """取得選舉內登記選民數量（voted_only=True 時只算已投票的）"""
        query = db.query(Voter).filter(Voter.election_id == election_id)
        if voted_only:
            query = query.filter(Voter.has_voted == True)  # noqa: E712
        return query.count()
