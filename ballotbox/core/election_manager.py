"""
Election Manager：管理選舉的完整生命週期（WorkflowController）

職責：
1. 建立 Election（指定 owner）
2. 依序推進 WorkflowStatus（只有 owner 可以）
3. 計票（委派給 TallyEngine）
4. 查詢 Election 資訊

原則：
- 所有狀態變更經過 WorkflowStateMachine
- 先檢查權限，再檢查階段，最後才寫入
"""
from sqlalchemy.orm import Session
import logging

from ballotbox.models import Election, WorkflowStatus
from ballotbox.core.state_machine import WorkflowStateMachine
from ballotbox.core.tally_engine import TallyEngine
from ballotbox.core.locks import with_election_lock
from ballotbox.core.exceptions import ElectionNotFound
from ballotbox.services.access_service import require_owner
from ballotbox.database import transactional

logger = logging.getLogger(__name__)


class ElectionManager:
    """Election 生命週期管理器"""

    @staticmethod
    @transactional
    def create_election(db: Session, owner: str) -> Election:
        """
        建立新選舉

        參數：
            db: SQLAlchemy Session
            owner: 管理者（administrative authority）的身分

        返回：
            新的 Election（狀態為 REGISTERING_VOTERS）
        """
        if not owner:
            raise ValueError("Election owner must be a non-empty identity")

        election = Election(owner=owner, status=WorkflowStatus.REGISTERING_VOTERS)
        db.add(election)
        db.flush()  # 取得 election.id

        logger.info(f"Created election {election.id} owned by {owner}")
        return election

    @staticmethod
    def _advance(db: Session, election_id: str, caller: str, target: WorkflowStatus) -> Election:
        # 1. 鎖定並檢查權限
        election = with_election_lock(election_id, db).first()
        if not election:
            raise ElectionNotFound(election_id)
        require_owner(election, caller)

        # 2. 狀態轉換（會自動記錄 WORKFLOW_STATUS_CHANGED 事件）
        return WorkflowStateMachine.transition(election_id, target, db)

    @staticmethod
    @transactional
    def start_proposals_registering(db: Session, election_id: str, caller: str) -> Election:
        """
        開始提案登記（REGISTERING_VOTERS -> PROPOSALS_REGISTRATION_STARTED）

        異常：
            NotAuthorized: caller 不是 owner
            InvalidStateTransition: 目前階段不是 REGISTERING_VOTERS
        """
        return ElectionManager._advance(
            db, election_id, caller, WorkflowStatus.PROPOSALS_REGISTRATION_STARTED
        )

    @staticmethod
    @transactional
    def end_proposals_registering(db: Session, election_id: str, caller: str) -> Election:
        """結束提案登記（PROPOSALS_REGISTRATION_STARTED -> PROPOSALS_REGISTRATION_ENDED）"""
        return ElectionManager._advance(
            db, election_id, caller, WorkflowStatus.PROPOSALS_REGISTRATION_ENDED
        )

    @staticmethod
    @transactional
    def start_voting_session(db: Session, election_id: str, caller: str) -> Election:
        """開始投票（PROPOSALS_REGISTRATION_ENDED -> VOTING_SESSION_STARTED）"""
        return ElectionManager._advance(
            db, election_id, caller, WorkflowStatus.VOTING_SESSION_STARTED
        )

    @staticmethod
    @transactional
    def end_voting_session(db: Session, election_id: str, caller: str) -> Election:
        """結束投票（VOTING_SESSION_STARTED -> VOTING_SESSION_ENDED）"""
        return ElectionManager._advance(
            db, election_id, caller, WorkflowStatus.VOTING_SESSION_ENDED
        )

    @staticmethod
    @transactional
    def tally_votes_draw(db: Session, election_id: str, caller: str) -> Election:
        """
        計票（VOTING_SESSION_ENDED -> VOTES_TALLIED）

        流程：
        1. 檢查權限與階段（狀態轉換）
        2. TallyEngine 計算所有並列最高票的提案並存回 Election

        兩步驟在同一個 transaction 內，任何一步失敗都會整個 rollback

        異常：
            NotAuthorized: caller 不是 owner
            InvalidStateTransition: 目前階段不是 VOTING_SESSION_ENDED
            ElectionInvariantError: 票數總和與已投票選民數不一致（程式錯誤）
        """
        election = ElectionManager._advance(
            db, election_id, caller, WorkflowStatus.VOTES_TALLIED
        )
        winners = TallyEngine.tally(db, election)

        logger.info(f"Election {election_id} tallied, winners: {winners}")
        return election

    @staticmethod
    def get_election(db: Session, election_id: str) -> Election:
        """
        透過 UUID 取得 Election

        異常：
            ElectionNotFound: Election 不存在
        """
        election = db.query(Election).filter(Election.id == election_id).first()
        if not election:
            raise ElectionNotFound(election_id)
        return election

    @staticmethod
    def get_workflow_status(db: Session, election_id: str) -> WorkflowStatus:
        return WorkflowStatus(ElectionManager.get_election(db, election_id).status)
