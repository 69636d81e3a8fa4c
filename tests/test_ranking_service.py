import pytest

from dkpapi.core.exceptions import NotFoundError
from dkpapi.services.point_service import PointService
from dkpapi.services.ranking_service import RankingService


@pytest.fixture
def point_service(db):
    return PointService(db)


@pytest.fixture
def ranking_service(db):
    return RankingService(db)


class TestLeaderboard:
    """리더보드 테스트"""

    def test_ties_keep_creation_order_without_rank_compression(
        self, make_system, point_service, ranking_service
    ):
        """[50, 80, 80, 10] -> 80(B), 80(C), 50(A), 10(D), 순위 1..4"""
        # Given
        system = make_system()
        for character_id, amount in [("A", 50), ("B", 80), ("C", 80), ("D", 10)]:
            point_service.award(system.id, character_id, amount, "Raid")

        # When
        board = ranking_service.leaderboard(system.id)

        # Then
        assert [e.account.character_id for e in board.entries] == ["B", "C", "A", "D"]
        assert [e.rank for e in board.entries] == [1, 2, 3, 4]
        assert board.participants == 4
        assert board.total_points == 220

    def test_priority_ratio_uncapped_until_first_spend(
        self, make_system, point_service, ranking_service
    ):
        system = make_system()
        point_service.award(system.id, "spender", 30, "Raid")
        point_service.deduct(system.id, "spender", 20, "Loot: Cloak")
        point_service.award(system.id, "saver", 30, "Raid")

        board = ranking_service.leaderboard(system.id)
        ratios = {e.account.character_id: e.priority_ratio for e in board.entries}

        assert ratios["spender"] == 1.5
        assert ratios["saver"] is None

    def test_limit_truncates_entries_but_not_summary(
        self, make_system, point_service, ranking_service
    ):
        system = make_system()
        for character_id, amount in [("A", 5), ("B", 15), ("C", 10)]:
            point_service.award(system.id, character_id, amount, "Raid")

        board = ranking_service.leaderboard(system.id, limit=2)

        assert [e.account.character_id for e in board.entries] == ["B", "C"]
        assert board.participants == 3
        assert board.total_points == 30

    def test_empty_system(self, make_system, ranking_service):
        system = make_system()

        board = ranking_service.leaderboard(system.id)

        assert board.entries == []
        assert board.participants == 0

    def test_unknown_system(self, ranking_service):
        with pytest.raises(NotFoundError):
            ranking_service.leaderboard(12345)
