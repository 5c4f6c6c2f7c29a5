"""
流程階段服務：判斷 WorkflowStatus 的合法推進，以及每個操作允許的階段

選舉流程（只能依序往前，不能跳過、不能回頭）：
- REGISTERING_VOTERS → PROPOSALS_REGISTRATION_STARTED
- PROPOSALS_REGISTRATION_STARTED → PROPOSALS_REGISTRATION_ENDED
- PROPOSALS_REGISTRATION_ENDED → VOTING_SESSION_STARTED
- VOTING_SESSION_STARTED → VOTING_SESSION_ENDED
- VOTING_SESSION_ENDED → VOTES_TALLIED（終點）
"""
from typing import Optional

from ballotbox.models import WorkflowStatus


# 每個寫入操作唯一允許的階段，以及不符合時的錯誤訊息
OPERATION_PHASES = {
    "add_voter": (
        WorkflowStatus.REGISTERING_VOTERS,
        "Voters registration is not open yet",
    ),
    "add_proposal": (
        WorkflowStatus.PROPOSALS_REGISTRATION_STARTED,
        "Proposals are not allowed yet",
    ),
    "set_vote": (
        WorkflowStatus.VOTING_SESSION_STARTED,
        "Voting session havent started yet",
    ),
}

TRANSITION_ERRORS = {
    WorkflowStatus.PROPOSALS_REGISTRATION_STARTED: "Registering proposals cant be started now",
    WorkflowStatus.PROPOSALS_REGISTRATION_ENDED: "Registering proposals havent started yet",
    WorkflowStatus.VOTING_SESSION_STARTED: "Registering proposals phase is not finished",
    WorkflowStatus.VOTING_SESSION_ENDED: "Voting session havent started yet",
    WorkflowStatus.VOTES_TALLIED: "Current status is not voting session ended",
}


def get_next_status(status: WorkflowStatus) -> Optional[WorkflowStatus]:
    """
    取得下一個階段

    參數：
        status: 目前的 WorkflowStatus

    返回：
        下一個 WorkflowStatus；VOTES_TALLIED 是終點，返回 None

    範例：
        get_next_status(WorkflowStatus.REGISTERING_VOTERS) -> PROPOSALS_REGISTRATION_STARTED
        get_next_status(WorkflowStatus.VOTES_TALLIED) -> None
    """
    if status == WorkflowStatus.VOTES_TALLIED:
        return None
    return WorkflowStatus(status + 1)


def is_valid_transition(current: WorkflowStatus, target: WorkflowStatus) -> bool:
    return get_next_status(current) == target


def operation_allowed(operation: str, status: WorkflowStatus) -> bool:
    """
    檢查寫入操作在目前階段是否允許

    參數：
        operation: "add_voter" / "add_proposal" / "set_vote"
        status: 目前的 WorkflowStatus

    異常：
        KeyError: 未知的操作名稱
    """
    required, _ = OPERATION_PHASES[operation]
    return status == required


def phase_error_message(operation: str) -> str:
    return OPERATION_PHASES[operation][1]


def transition_error_message(target: WorkflowStatus) -> str:
    return TRANSITION_ERRORS.get(target, f"Cannot transition to {target.name}")
