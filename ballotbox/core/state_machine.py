"""
狀態機：集中管理所有 WorkflowStatus 轉換

規則：
- 每個轉換只接受「唯一一個」前一個階段
- 不管目前階段離目標多遠，錯誤都一樣是 InvalidStateTransition（InvalidPhase）
- 每次成功轉換都會記錄 WorkflowStatusChanged 事件
"""
from sqlalchemy.orm import Session
import logging

from ballotbox.models import Election, WorkflowStatus
from ballotbox.core.events import WorkflowStatusChanged, record_event
from ballotbox.core.exceptions import ElectionNotFound, InvalidPhase, InvalidStateTransition
from ballotbox.core.locks import with_election_lock
from ballotbox.services.phase_service import (
    is_valid_transition,
    operation_allowed,
    phase_error_message,
    transition_error_message,
)

logger = logging.getLogger(__name__)


class WorkflowStateMachine:
    """Election WorkflowStatus 狀態機"""

    @staticmethod
    def transition(election_id: str, target: WorkflowStatus, db: Session) -> Election:
        """
        轉換選舉階段

        流程：
        1. 鎖定 Election
        2. 檢查 current -> target 是否為合法的下一步
        3. 更新狀態並記錄事件

        參數：
            election_id: Election UUID
            target: 目標階段
            db: SQLAlchemy Session

        返回：
            更新後的 Election

        異常：
            ElectionNotFound: Election 不存在
            InvalidStateTransition: 目前階段不是 target 的前一個階段

        注意：
            - 不會 commit，由呼叫端的 @transactional 負責
        """
        election = with_election_lock(election_id, db).first()
        if not election:
            raise ElectionNotFound(election_id)

        previous = WorkflowStatus(election.status)
        if not is_valid_transition(previous, target):
            logger.warning(
                f"Rejected transition {previous.name} -> {target.name} "
                f"for election {election_id}"
            )
            raise InvalidStateTransition(transition_error_message(target))

        election.status = target
        record_event(db, WorkflowStatusChanged(
            election_id=election_id,
            previous_status=previous,
            new_status=target
        ))

        logger.info(f"Election {election_id} status {previous.name} -> {target.name}")
        return election

    @staticmethod
    def require_phase(election: Election, operation: str) -> None:
        """
        檢查寫入操作在目前階段是否允許

        異常：
            InvalidPhase: 目前階段不是 operation 唯一允許的階段
        """
        if not operation_allowed(operation, WorkflowStatus(election.status)):
            raise InvalidPhase(phase_error_message(operation))
