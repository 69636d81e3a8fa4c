import os

# 엔진은 import 시점에 생성되므로 dkpapi 보다 먼저 설정
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from decimal import Decimal
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from dkpapi.core.security import create_access_token
from dkpapi.models import Base, LootSystem


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    """테이블이 생성된 인메모리 sqlite 세션"""
    session = sessionmaker(
        autocommit=False, autoflush=False, bind=engine, expire_on_commit=False
    )()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_system(db):
    """루트 시스템 생성 헬퍼"""

    def _make(group_id: str = "guild-1", **overrides) -> LootSystem:
        fields = dict(
            group_id=group_id,
            name="Main DKP",
            is_active=True,
            starting_points=0,
            decay_enabled=False,
            decay_rate=Decimal("0"),
            decay_minimum=0,
            raid_attendance_points=0,
            siege_attendance_points=0,
            boss_kill_points=0,
        )
        fields.update(overrides)
        system = LootSystem(**fields)
        db.add(system)
        db.commit()
        db.refresh(system)
        return system

    return _make


@pytest.fixture
def admin_headers():
    token = create_access_token({"sub": "officer-1", "is_admin": True})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def member_headers():
    token = create_access_token({"sub": "member-1", "is_admin": False})
    return {"Authorization": f"Bearer {token}"}
