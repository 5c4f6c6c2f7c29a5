"""
並發控制工具

兩層鎖：
1. 行程內：ReadWriteLock，讓同一個選舉的所有寫入操作完全序列化，
   讀取可以並行，但必須等待正在進行的寫入結束
2. Database-level：SELECT ... FOR UPDATE 悲觀鎖（Pessimistic Locking），
   讓多個行程共用同一個 PostgreSQL 時也能序列化

SQLite 會忽略 FOR UPDATE，此時由第 1 層負責。
"""
from contextlib import contextmanager
import threading
import weakref

from sqlalchemy.orm import Session, Query

from ballotbox.models import Election, Proposal


def with_election_lock(election_id: str, db: Session) -> Query:
    """
    鎖定一個 Election（行級鎖）

    使用場景：
    - 修改 WorkflowStatus 時
    - 任何依賴目前階段的寫入（登記選民、提案、投票）

    範例：
        election = with_election_lock(election_id, db).first()
        if not election:
            raise ElectionNotFound(election_id)

    參數：
        election_id: Election 的 UUID
        db: SQLAlchemy Session

    返回：
        Query object（需要呼叫 .first() 或 .one() 來取得結果）

    注意：
        - nowait=False 表示如果鎖被佔用，會等待
        - 必須在 transaction 內使用（確保有 commit 或 rollback）
    """
    return db.query(Election).filter(
        Election.id == election_id
    ).with_for_update(nowait=False)


def with_proposal_lock(election_id: str, proposal_id: int, db: Session) -> Query:
    """
    鎖定一個 Proposal（行級鎖）

    使用場景：
    - 投票時增加 vote_count（防止兩筆投票同時讀到舊的票數）
    """
    return db.query(Proposal).filter(
        Proposal.election_id == election_id,
        Proposal.proposal_id == proposal_id
    ).with_for_update(nowait=False)


class ReadWriteLock:
    """
    讀寫鎖（writer 優先）

    - 寫入者獨佔：同一時間只有一個寫入者，且沒有讀取者
    - 讀取者共享：多個讀取者可以同時進行
    - 有寫入者在等待時，新的讀取者會排隊，避免寫入者餓死

    範例：
        lock = ReadWriteLock()
        with lock.write():
            ...  # 修改選舉狀態
        with lock.read():
            ...  # 查詢
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read(self):
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write(self):
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


# engine 持有鎖的強參照；沒有 engine 使用時鎖會被回收
_election_locks = weakref.WeakValueDictionary()
_registry_lock = threading.Lock()


def get_election_lock(election_id: str) -> ReadWriteLock:
    """
    取得選舉專屬的 ReadWriteLock（同一個行程內共用）

    同一個 election_id 無論建立多少個 ElectionEngine，都會拿到同一把鎖
    """
    with _registry_lock:
        lock = _election_locks.get(election_id)
        if lock is None:
            lock = _election_locks[election_id] = ReadWriteLock()
        return lock
