"""
ElectionEngine：選舉的單一入口

每個公開操作的流程：
1. 取得選舉的讀寫鎖（寫入獨佔，讀取共享）
2. 開一個 Session，交給對應的 Manager / Registry / Book / TallyEngine
3. Manager 檢查權限與階段、寫入、commit（失敗則整個 rollback）
4. 在 session 關閉前把 ORM 物件轉成 schemas 紀錄
5. 仍持有寫入鎖時同步通知 observer，確保通知順序 == 操作順序

呼叫者身分（caller）由外部執行環境提供，每次呼叫都要明確傳入。
"""
from typing import Callable, Iterable, List, Optional

from sqlalchemy.orm import sessionmaker

from ballotbox.database import get_db
from ballotbox.models import WorkflowStatus
from ballotbox.schemas import ElectionSummary, HistoryEntry, ProposalRecord, VoterRecord
from ballotbox.core.election_manager import ElectionManager
from ballotbox.core.events import EventDispatcher, Observer, drain_events
from ballotbox.core.locks import get_election_lock
from ballotbox.core.proposal_book import ProposalBook
from ballotbox.core.tally_engine import TallyEngine
from ballotbox.core.voter_registry import VoterRegistry
from ballotbox.services.history_service import get_election_history
from ballotbox.services.tally_service import total_votes


def _status(election) -> WorkflowStatus:
    return WorkflowStatus(election.status)


def _voter_record(voter) -> VoterRecord:
    return VoterRecord.model_validate(voter)


def _proposal_record(proposal) -> ProposalRecord:
    return ProposalRecord.model_validate(proposal)


def _proposal_records(proposals) -> List[ProposalRecord]:
    return [ProposalRecord.model_validate(p) for p in proposals]


class ElectionEngine:
    """
    單一選舉的引擎

    範例：
        engine = ElectionEngine.create(owner="0xOwner")
        engine.add_voter("0xOwner", "0xAlice")
        engine.start_proposals_registering("0xOwner")
        engine.add_proposal("0xAlice", "Plant more trees")
        ...
        engine.tally_votes_draw("0xOwner")
        winners = engine.get_winner()
    """

    def __init__(
        self,
        election_id: str,
        session_factory: Optional[sessionmaker] = None,
        observers: Iterable[Observer] = ()
    ):
        self.election_id = election_id
        self._session_factory = session_factory
        self._dispatcher = EventDispatcher(observers)
        self._lock = get_election_lock(election_id)

        # 確認選舉存在（不存在時拋出 ElectionNotFound）
        with get_db(self._session_factory) as db:
            ElectionManager.get_election(db, election_id)

    @classmethod
    def create(
        cls,
        owner: str,
        session_factory: Optional[sessionmaker] = None,
        observers: Iterable[Observer] = ()
    ) -> "ElectionEngine":
        """建立新選舉並返回綁定它的引擎（狀態為 REGISTERING_VOTERS）"""
        with get_db(session_factory) as db:
            election = ElectionManager.create_election(db, owner)
            election_id = election.id
        return cls(election_id, session_factory=session_factory, observers=observers)

    # ============ Observer ============

    def subscribe(self, observer: Observer) -> None:
        self._dispatcher.subscribe(observer)

    def unsubscribe(self, observer: Observer) -> None:
        self._dispatcher.unsubscribe(observer)

    # ============ 內部：鎖 + session ============

    def _mutate(self, operation: Callable, convert: Callable, *args):
        with self._lock.write():
            with get_db(self._session_factory) as db:
                result = convert(operation(db, self.election_id, *args))
                events = drain_events(db)
            self._dispatcher.publish(events)
        return result

    def _read(self, operation: Callable, convert: Callable, *args):
        with self._lock.read():
            with get_db(self._session_factory) as db:
                return convert(operation(db, self.election_id, *args))

    # ============ WorkflowController ============

    def workflow_status(self) -> WorkflowStatus:
        return self._read(ElectionManager.get_workflow_status, lambda status: status)

    def start_proposals_registering(self, caller: str) -> WorkflowStatus:
        return self._mutate(ElectionManager.start_proposals_registering, _status, caller)

    def end_proposals_registering(self, caller: str) -> WorkflowStatus:
        return self._mutate(ElectionManager.end_proposals_registering, _status, caller)

    def start_voting_session(self, caller: str) -> WorkflowStatus:
        return self._mutate(ElectionManager.start_voting_session, _status, caller)

    def end_voting_session(self, caller: str) -> WorkflowStatus:
        return self._mutate(ElectionManager.end_voting_session, _status, caller)

    def tally_votes_draw(self, caller: str) -> List[int]:
        """計票並返回勝出提案的 proposal_id 列表（平手時有多個）"""
        return self._mutate(
            ElectionManager.tally_votes_draw,
            lambda election: list(election.winning_proposal_ids),
            caller
        )

    # ============ VoterRegistry ============

    def add_voter(self, caller: str, address: str) -> VoterRecord:
        return self._mutate(VoterRegistry.add_voter, _voter_record, caller, address)

    def get_voter(self, caller: str, address: str) -> VoterRecord:
        return self._read(VoterRegistry.get_voter, _voter_record, caller, address)

    # ============ ProposalBook ============

    def add_proposal(self, caller: str, description: str) -> int:
        """新增提案並返回分配到的 proposal_id"""
        return self._mutate(
            ProposalBook.add_proposal,
            lambda proposal: proposal.proposal_id,
            caller,
            description
        )

    def get_one_proposal(self, caller: str, proposal_id: int) -> ProposalRecord:
        return self._read(ProposalBook.get_one_proposal, _proposal_record, caller, proposal_id)

    def list_proposals(self, caller: str) -> List[ProposalRecord]:
        return self._read(ProposalBook.list_proposals, _proposal_records, caller)

    # ============ TallyEngine ============

    def set_vote(self, caller: str, proposal_id: int) -> ProposalRecord:
        return self._mutate(TallyEngine.set_vote, _proposal_record, caller, proposal_id)

    def get_winner(self) -> List[ProposalRecord]:
        """
        取得勝出提案（依 proposal_id 升冪）

        異常：
            NotYetTallied: 尚未計票
        """
        return self._read(TallyEngine.get_winner, _proposal_records)

    # ============ 稽核 ============

    def history(self, event_type: Optional[str] = None) -> List[HistoryEntry]:
        with self._lock.read():
            with get_db(self._session_factory) as db:
                entries = get_election_history(self.election_id, db, event_type=event_type)
        return [HistoryEntry(**entry) for entry in entries]

    def summary(self) -> ElectionSummary:
        with self._lock.read():
            with get_db(self._session_factory) as db:
                election = ElectionManager.get_election(db, self.election_id)
                vote_counts = [(p.proposal_id, p.vote_count) for p in election.proposals]
                return ElectionSummary(
                    election_id=election.id,
                    owner=election.owner,
                    status=_status(election),
                    voter_count=VoterRegistry.count_voters(db, self.election_id),
                    proposal_count=len(vote_counts),
                    total_votes=total_votes(vote_counts),
                    winning_proposal_ids=list(election.winning_proposal_ids or [])
                )
