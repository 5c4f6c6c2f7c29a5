"""
Event 通知：記錄並同步通知所有 observer

流程：
1. Manager 在 transaction 內呼叫 record_event()：寫入 EventLog 並把事件排入 session
2. transaction commit 之後，ElectionEngine 呼叫 drain_events() 取出事件
3. EventDispatcher.publish() 依照提交順序同步通知 observer

rollback 時排隊中的事件會被 discard_events() 丟棄，observer 永遠不會看到
沒有 commit 的變更。
"""
from dataclasses import dataclass, asdict
from typing import Any, Callable, ClassVar, Dict, List, Protocol, Union, TYPE_CHECKING
import logging

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from ballotbox.models import WorkflowStatus

logger = logging.getLogger(__name__)

PENDING_EVENTS_KEY = "ballotbox.pending_events"


@dataclass(frozen=True)
class ElectionEvent:
    election_id: str

    event_type: ClassVar[str] = "ELECTION_EVENT"

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data.pop("election_id")
        return data


@dataclass(frozen=True)
class VoterRegistered(ElectionEvent):
    voter_address: str

    event_type: ClassVar[str] = "VOTER_REGISTERED"


@dataclass(frozen=True)
class ProposalRegistered(ElectionEvent):
    proposal_id: int
    submitter: str

    event_type: ClassVar[str] = "PROPOSAL_REGISTERED"


@dataclass(frozen=True)
class Voted(ElectionEvent):
    voter: str
    proposal_id: int

    event_type: ClassVar[str] = "VOTED"


@dataclass(frozen=True)
class WorkflowStatusChanged(ElectionEvent):
    previous_status: "WorkflowStatus"
    new_status: "WorkflowStatus"

    event_type: ClassVar[str] = "WORKFLOW_STATUS_CHANGED"

    def as_dict(self) -> Dict[str, Any]:
        return {
            "previous_status": self.previous_status.name,
            "new_status": self.new_status.name,
        }


class ElectionObserver(Protocol):
    def notify(self, event: ElectionEvent) -> None:
        ...


Observer = Union[ElectionObserver, Callable[[ElectionEvent], None]]


def record_event(db: "Session", event: ElectionEvent) -> None:
    """
    在目前的 transaction 內記錄事件

    - 寫入一筆 EventLog（跟著 transaction 一起 commit / rollback）
    - 把事件排入 session，等 commit 後再通知 observer
    """
    from ballotbox.models import EventLog

    db.add(EventLog(
        election_id=event.election_id,
        event_type=event.event_type,
        data=event.as_dict()
    ))
    db.info.setdefault(PENDING_EVENTS_KEY, []).append(event)


def drain_events(db: "Session") -> List[ElectionEvent]:
    """取出（並清空）session 內已 commit、尚未通知的事件"""
    return db.info.pop(PENDING_EVENTS_KEY, [])


def discard_events(db: "Session") -> None:
    dropped = db.info.pop(PENDING_EVENTS_KEY, [])
    if dropped:
        logger.debug(f"Discarded {len(dropped)} pending event(s) after rollback")


class EventDispatcher:
    """同步通知已註冊的 observer"""

    def __init__(self, observers=()):
        self._observers: List[Observer] = list(observers)

    def subscribe(self, observer: Observer) -> None:
        self._observers.append(observer)

    def unsubscribe(self, observer: Observer) -> None:
        self._observers.remove(observer)

    def publish(self, events: List[ElectionEvent]) -> int:
        """
        依序把事件送給每個 observer

        返回：
            失敗的通知次數

        注意：
            變更已經 commit，observer 的異常只會被記錄，不會讓操作變成失敗；
            其餘 observer 照常收到事件
        """
        failures = 0
        for event in events:
            for observer in list(self._observers):
                notify = getattr(observer, "notify", observer)
                try:
                    notify(event)
                except Exception as e:
                    logger.error(
                        f"Observer {observer!r} failed on {event.event_type}: {e}",
                        exc_info=True
                    )
                    failures += 1
        return failures
