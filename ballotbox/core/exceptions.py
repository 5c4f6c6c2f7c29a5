"""
自定義異常類別

集中管理所有業務邏輯異常，方便呼叫端統一處理。
每個異常都帶有穩定的 kind（例如 "NotAuthorized"）以及人類可讀的原因。
"""


class BallotBoxException(Exception):
    """所有選舉異常的基類"""
    kind = "BallotBoxError"
    default_reason = "Election operation failed"

    def __init__(self, reason=None):
        self.reason = reason or self.default_reason
        super().__init__(self.reason)


# ============ 權限相關異常 ============

class NotAuthorized(BallotBoxException):
    """呼叫者沒有執行此操作的權限（不是 owner 或不是已登記選民）"""
    kind = "NotAuthorized"
    default_reason = "Caller is not authorized"


# ============ 流程階段相關異常 ============

class InvalidPhase(BallotBoxException):
    """目前的 WorkflowStatus 不是此操作要求的階段"""
    kind = "InvalidPhase"
    default_reason = "Operation not allowed in the current workflow status"


class InvalidStateTransition(InvalidPhase):
    """非法的狀態轉換"""
    pass


# ============ Voter 相關異常 ============

class AlreadyRegistered(BallotBoxException):
    """選民已經登記過了"""
    kind = "AlreadyRegistered"
    default_reason = "Already registered"


class AlreadyVoted(BallotBoxException):
    """選民已經投過票了"""
    kind = "AlreadyVoted"
    default_reason = "You have already voted"


# ============ Proposal 相關異常 ============

class EmptyProposal(BallotBoxException):
    """提案內容為空（或只有空白）"""
    kind = "EmptyProposal"
    default_reason = "Vous ne pouvez pas ne rien proposer"


class OutOfRange(BallotBoxException):
    """提案不存在"""
    kind = "OutOfRange"
    default_reason = "Proposal not found"

    def __init__(self, proposal_id, reason=None):
        self.proposal_id = proposal_id
        super().__init__(reason or f"Proposal not found: {proposal_id}")


# ============ 計票相關異常 ============

class NotYetTallied(BallotBoxException):
    """尚未計票，沒有勝出提案"""
    kind = "NotYetTallied"
    default_reason = "Votes have not been tallied yet"


# ============ Election 相關異常 ============

class ElectionNotFound(BallotBoxException):
    """選舉不存在"""
    kind = "ElectionNotFound"

    def __init__(self, election_id):
        self.election_id = election_id
        super().__init__(f"Election {election_id} not found")


class ElectionInvariantError(RuntimeError):
    """
    內部不變量被破壞（程式錯誤，不是呼叫者造成的）

    例如：所有提案的票數總和 != 已投票的選民數
    """
    pass
