"""DB接続・セッション管理

エンジンはモジュール読み込み時には作らない。起動処理（main.lifespan）や
スクリプトが create_db_engine() で作成し、終了時に dispose する。
"""
import logging
import time

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from .config import (
    DATABASE_URL, DB_POOL_SIZE, DB_MAX_OVERFLOW, DB_POOL_TIMEOUT, IS_DEVELOPMENT,
)

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def create_db_engine(url: str = DATABASE_URL, **kwargs) -> Engine:
    """接続プール付きエンジンを作成"""
    connect_args = kwargs.pop("connect_args", {})
    if url.startswith("sqlite"):
        # SQLite用: スレッド間でコネクションを共有する
        connect_args.setdefault("check_same_thread", False)
    else:
        kwargs.setdefault("pool_size", DB_POOL_SIZE)
        kwargs.setdefault("max_overflow", DB_MAX_OVERFLOW)
        kwargs.setdefault("pool_timeout", DB_POOL_TIMEOUT)
        kwargs.setdefault("pool_pre_ping", True)

    engine = create_engine(url, connect_args=connect_args, echo=False, **kwargs)

    if url.startswith("sqlite"):
        # WALモード + 外部キー有効化
        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
            # 組み込みの lower() はASCIIしか小文字化しないので差し替える
            dbapi_conn.create_function("lower", 1, _unicode_lower, deterministic=True)

    if IS_DEVELOPMENT:
        _log_query_timings(engine)

    return engine


def _log_query_timings(engine: Engine) -> None:
    """開発モード用: SQLと実行時間をDEBUGで出力"""

    @event.listens_for(engine, "before_cursor_execute")
    def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        conn.info.setdefault("query_start", []).append(time.perf_counter())

    @event.listens_for(engine, "after_cursor_execute")
    def after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        elapsed = time.perf_counter() - conn.info["query_start"].pop()
        logger.debug(f"SQL executed in {elapsed * 1000:.1f}ms rows={cursor.rowcount}: {statement}")


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)
