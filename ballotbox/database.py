from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from pydantic_settings import BaseSettings
from contextlib import contextmanager
from functools import lru_cache, wraps
import logging

from ballotbox.core.events import discard_events

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    database_url: str = "sqlite:///./ballotbox.db"
    database_echo: bool = False

    class Config:
        env_file = ".env"
        env_prefix = "BALLOTBOX_"


@lru_cache()
def get_settings():
    return Settings()


def build_engine(database_url: str, echo: bool = False):
    """
    依照連線字串建立 SQLAlchemy Engine

    SQLite 需要特殊設定：connect_args={"check_same_thread": False}
    這允許多執行緒存取同一個 SQLite 連線（ElectionEngine 的讀取可以並行）
    """
    return create_engine(
        database_url,
        echo=echo,
        connect_args={"check_same_thread": False} if database_url.startswith("sqlite") else {},
        pool_pre_ping=True
    )


settings = get_settings()

engine = build_engine(settings.database_url, settings.database_echo)
SessionLocal = sessionmaker(autoflush=False, bind=engine)
Base = declarative_base()


def init_db(bind=None) -> None:
    """建立所有資料表（已存在的表不會被重建）"""
    # models 必須先被 import，Base.metadata 才會有資料表定義
    from ballotbox import models  # noqa: F401

    Base.metadata.create_all(bind=bind if bind is not None else engine)


@contextmanager
def get_db(session_factory=None):
    """
    提供 Database Session

    使用 with 確保 session 在操作結束後會被關閉
    """
    db = (session_factory or SessionLocal)()
    try:
        yield db
    finally:
        db.close()


def transactional(func):
    """
    Transaction decorator：確保資料庫操作的原子性

    使用方式：
        @transactional
        def some_business_logic(db: Session, ...):
            # 所有 DB 操作都在一個 transaction 內
            voter = Voter(...)
            db.add(voter)
            # 不需要手動 commit，decorator 會處理

    如果函式內發生異常：
        - 自動 rollback（沒有任何部分寫入會留下）
        - 異常會被重新拋出（讓上層處理）

    注意：
        - 第一個參數必須是 db: Session
        - 不要在函式內手動 commit（decorator 會處理）
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        # 找出 db session（可能在 args 或 kwargs）
        db = None
        if args and isinstance(args[0], Session):
            db = args[0]
        elif 'db' in kwargs:
            db = kwargs['db']

        if db is None:
            raise ValueError(
                f"@transactional requires 'db: Session' as first argument, "
                f"but got args={args}, kwargs={kwargs}"
            )

        try:
            result = func(*args, **kwargs)
            db.commit()
            return result
        except Exception as e:
            logger.error(f"Transaction failed in {func.__name__}: {e}", exc_info=True)
            db.rollback()
            # rollback 之後，尚未送出的通知也必須一起丟棄
            discard_events(db)
            raise

    return wrapper
