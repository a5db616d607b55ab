"""
Database
SQLAlchemy 엔진 / 세션 관리

기본은 로컬 SQLite 파일, 운영 환경은 PostgreSQL URL을 사용한다.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session as DBSession
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """엔진과 세션 팩토리 보관"""

    def __init__(
        self,
        url: Optional[str] = None,
        echo: Optional[bool] = None,
        engine: Optional[Engine] = None,
    ):
        if engine is None:
            from mentionwatch.core.config import settings

            url = url or settings.DATABASE_URL
            echo = settings.DATABASE_ECHO if echo is None else echo
            engine = self._create_engine(url, echo)

        self.engine = engine
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)
        # 인메모리 SQLite는 커넥션 하나를 공유하므로 스레드 간 세션을 직렬화한다
        self._shared_connection = isinstance(self.engine.pool, StaticPool)
        self._lock = threading.RLock()

    @staticmethod
    def _create_engine(url: str, echo: bool) -> Engine:
        if url.startswith("sqlite"):
            kwargs = {"connect_args": {"check_same_thread": False}}
            # 인메모리 DB는 모든 세션이 같은 커넥션을 공유해야 한다
            if url in ("sqlite://", "sqlite:///:memory:"):
                kwargs["poolclass"] = StaticPool
            engine = create_engine(url, echo=echo, **kwargs)
            event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        else:
            engine = create_engine(
                url,
                pool_size=10,
                max_overflow=20,
                pool_pre_ping=True,
                echo=echo,
            )

        logger.info(f"[Database] Engine created: {engine.url.render_as_string(hide_password=True)}")
        return engine

    @classmethod
    def in_memory(cls) -> "Database":
        """테스트용 인메모리 SQLite"""
        return cls(url="sqlite://", echo=False)

    def create_all(self) -> None:
        """테이블 생성"""
        from mentionwatch.data_pipeline.repositories import models  # noqa: F401

        Base.metadata.create_all(self.engine)
        logger.info("[Database] Tables ensured")

    def drop_all(self) -> None:
        from mentionwatch.data_pipeline.repositories import models  # noqa: F401

        Base.metadata.drop_all(self.engine)

    @contextmanager
    def serialized(self) -> Iterator[None]:
        """공유 커넥션 엔진이면 잠금, 아니면 그대로 통과"""
        if not self._shared_connection:
            yield
            return
        with self._lock:
            yield

    @contextmanager
    def session(self) -> Iterator[DBSession]:
        """DB 세션 컨텍스트 매니저"""
        with self.serialized():
            db = self.SessionLocal()
            try:
                yield db
                db.commit()
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

    def dispose(self) -> None:
        self.engine.dispose()
