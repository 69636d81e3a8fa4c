import pytest
from datetime import datetime, timezone
from unittest.mock import Mock
from fastapi.testclient import TestClient

from dkpapi.core.exceptions import AccountNotFoundError, NoActiveSystemError
from dkpapi.main import create_app
from dkpapi.schemas.points import (
    LeaderboardResponse,
    PointAccountResponse,
    RankedAccount,
)


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def client(app):
    """테스트 클라이언트 픽스처"""
    return TestClient(app)


@pytest.fixture
def mock_point_service(app):
    service = Mock()
    app.container.services.point_service.override(service)
    yield service
    app.container.services.point_service.reset_override()


@pytest.fixture
def mock_ranking_service(app):
    service = Mock()
    app.container.services.ranking_service.override(service)
    yield service
    app.container.services.ranking_service.reset_override()


def account(character_id="char-1", current_points=120, **overrides):
    fields = dict(
        id=1,
        loot_system_id=1,
        character_id=character_id,
        current_points=current_points,
        earned_total=current_points,
        spent_total=0,
        priority_ratio=None,
        last_earned_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )
    fields.update(overrides)
    return PointAccountResponse(**fields)


class TestPointRoutes:
    """포인트 라우터 테스트"""

    def test_award_points(self, client, admin_headers, mock_point_service):
        """관리자 포인트 지급"""
        # Given
        mock_point_service.award.return_value = account()

        # When
        response = client.post(
            "/api/v1/loot-systems/1/points/award",
            json={"character_id": "char-1", "amount": 20, "reason": "Raid"},
            headers=admin_headers,
        )

        # Then
        assert response.status_code == 200
        assert response.json()["current_points"] == 120
        mock_point_service.award.assert_called_once_with(1, "char-1", 20, "Raid")

    def test_award_requires_admin(self, client, member_headers, mock_point_service):
        """일반 멤버는 지급 불가"""
        response = client.post(
            "/api/v1/loot-systems/1/points/award",
            json={"character_id": "char-1", "amount": 20, "reason": "Raid"},
            headers=member_headers,
        )

        assert response.status_code == 403
        mock_point_service.award.assert_not_called()

    def test_award_requires_token(self, client, mock_point_service):
        response = client.post(
            "/api/v1/loot-systems/1/points/award",
            json={"character_id": "char-1", "amount": 20, "reason": "Raid"},
        )

        assert response.status_code == 401

    def test_award_rejects_non_positive_amount(self, client, admin_headers, mock_point_service):
        response = client.post(
            "/api/v1/loot-systems/1/points/award",
            json={"character_id": "char-1", "amount": 0, "reason": "Raid"},
            headers=admin_headers,
        )

        assert response.status_code == 422
        mock_point_service.award.assert_not_called()

    def test_award_rejects_amount_above_column_range(self, client, admin_headers, mock_point_service):
        response = client.post(
            "/api/v1/loot-systems/1/points/award",
            json={"character_id": "char-1", "amount": 2**31, "reason": "Raid"},
            headers=admin_headers,
        )

        assert response.status_code == 422
        mock_point_service.award.assert_not_called()

    def test_award_without_active_system(self, client, admin_headers, mock_point_service):
        mock_point_service.award.side_effect = NoActiveSystemError()

        response = client.post(
            "/api/v1/loot-systems/7/points/award",
            json={"character_id": "char-1", "amount": 20, "reason": "Raid"},
            headers=admin_headers,
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "LOOT_001"

    def test_deduct_unknown_account(self, client, admin_headers, mock_point_service):
        mock_point_service.deduct.side_effect = AccountNotFoundError()

        response = client.post(
            "/api/v1/loot-systems/1/points/deduct",
            json={"character_id": "ghost", "amount": 10, "reason": "Loot"},
            headers=admin_headers,
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "POINTS_002"

    def test_award_bulk(self, client, admin_headers, mock_point_service):
        mock_point_service.award_bulk.return_value = [account("a"), account("b")]

        response = client.post(
            "/api/v1/loot-systems/1/points/award-bulk",
            json={"character_ids": ["a", "b"], "amount": 10, "reason": "Siege"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["awarded_count"] == 2

    def test_leaderboard(self, client, member_headers, mock_ranking_service):
        """리더보드는 인증된 멤버도 조회 가능"""
        mock_ranking_service.leaderboard.return_value = LeaderboardResponse(
            loot_system_id=1,
            entries=[RankedAccount(rank=1, account=account(), priority_ratio=None)],
            participants=1,
            total_points=120,
        )

        response = client.get(
            "/api/v1/loot-systems/1/points/leaderboard?limit=10", headers=member_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["entries"][0]["rank"] == 1
        assert data["entries"][0]["priority_ratio"] is None
        mock_ranking_service.leaderboard.assert_called_once_with(1, limit=10)

    def test_ledger_limit_is_bounded(self, client, member_headers, mock_point_service):
        response = client.get(
            "/api/v1/loot-systems/1/points/accounts/char-1/ledger?limit=1000",
            headers=member_headers,
        )

        assert response.status_code == 422
        mock_point_service.get_account_ledger.assert_not_called()
