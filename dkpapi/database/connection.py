from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from dkpapi.config import Settings, settings


def build_engine(app_settings: Settings) -> Engine:
    """설정에 맞는 엔진 생성 (PostgreSQL 운영 / sqlite 로컬·테스트)"""
    url = app_settings.database_url

    if app_settings.is_sqlite:
        # 인메모리 sqlite는 모든 세션이 같은 커넥션을 공유해야 테이블이 보인다
        if url in ("sqlite://", "sqlite:///:memory:"):
            return create_engine(
                url,
                echo=app_settings.DEBUG,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        return create_engine(
            url,
            echo=app_settings.DEBUG,
            connect_args={
                "check_same_thread": False,
                "timeout": app_settings.DB_STATEMENT_TIMEOUT_MS / 1000,
            },
        )

    return create_engine(
        url,
        pool_size=app_settings.DB_POOL_SIZE,
        max_overflow=app_settings.DB_MAX_OVERFLOW,
        pool_timeout=app_settings.DB_POOL_TIMEOUT,
        pool_pre_ping=True,  # 연결 유효성 검사
        pool_recycle=3600,  # 1시간마다 연결 재생성
        echo=app_settings.DEBUG,  # 디버그 모드에서 SQL 로깅
        connect_args={
            "options": (
                f"-csearch_path={app_settings.POSTGRES_SCHEMA} "
                f"-cstatement_timeout={app_settings.DB_STATEMENT_TIMEOUT_MS}"
            )
        },
    )


engine = build_engine(settings)

# Use expire_on_commit=False to avoid DetachedInstanceError when accessing
# attributes after commit within the same request scope (common FastAPI pattern).
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,
)
