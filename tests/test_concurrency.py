import threading
from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker

from dkpapi.config import Settings
from dkpapi.database.connection import build_engine
from dkpapi.models import Base, DKPTransaction, LootSystem
from dkpapi.services.point_service import PointService


@pytest.fixture
def file_engine(tmp_path):
    """스레드마다 별도 커넥션을 쓰는 파일 sqlite 엔진"""
    engine = build_engine(Settings(DATABASE_URL=f"sqlite:///{tmp_path / 'ledger.db'}"))
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


class TestConcurrentAwards:
    """동시 지급 시 갱신 손실이 없어야 한다"""

    def test_parallel_awards_are_not_lost(self, file_engine):
        # Given
        SessionLocal = sessionmaker(bind=file_engine, expire_on_commit=False)
        with SessionLocal() as setup:
            system = LootSystem(
                group_id="guild-1",
                name="Main DKP",
                is_active=True,
                starting_points=0,
                decay_rate=Decimal("0"),
            )
            setup.add(system)
            setup.commit()
            system_id = system.id

            PointService(setup).award(system_id, "char-1", 1, "seed")

        errors = []
        barrier = threading.Barrier(2)

        def award(amount):
            with SessionLocal() as session:
                try:
                    barrier.wait()
                    PointService(session).award(system_id, "char-1", amount, "parallel")
                except Exception as e:  # 스레드 예외를 테스트 스레드로 전달
                    errors.append(e)

        # When
        threads = [threading.Thread(target=award, args=(n,)) for n in (10, 5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        # Then
        assert errors == []
        with SessionLocal() as check:
            account = PointService(check).get_account(system_id, "char-1")
            assert account.current_points == 16
            assert account.earned_total == 16
            assert check.query(DKPTransaction).count() == 3

    def test_parallel_first_awards_create_one_account(self, file_engine):
        """계정이 없는 캐릭터에 동시 첫 지급: 계정은 하나만 생성되고 시작 포인트는 한 번만 더해진다"""
        # Given
        SessionLocal = sessionmaker(bind=file_engine, expire_on_commit=False)
        with SessionLocal() as setup:
            system = LootSystem(
                group_id="guild-1",
                name="Main DKP",
                is_active=True,
                starting_points=100,
                decay_rate=Decimal("0"),
            )
            setup.add(system)
            setup.commit()
            system_id = system.id

        errors = []
        barrier = threading.Barrier(2)

        def award(amount):
            with SessionLocal() as session:
                try:
                    barrier.wait()
                    PointService(session).award(system_id, "char-new", amount, "parallel")
                except Exception as e:  # 스레드 예외를 테스트 스레드로 전달
                    errors.append(e)

        # When
        threads = [threading.Thread(target=award, args=(n,)) for n in (10, 5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        # Then
        assert errors == []
        with SessionLocal() as check:
            account = PointService(check).get_account(system_id, "char-new")
            assert account.current_points == 115
            assert account.earned_total == 15
            assert check.query(DKPTransaction).count() == 2
