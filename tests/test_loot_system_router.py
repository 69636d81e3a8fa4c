import pytest
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import Mock
from fastapi.testclient import TestClient

from dkpapi.core.exceptions import ConflictError, NoActiveSystemError
from dkpapi.main import create_app
from dkpapi.models import LootSystemType
from dkpapi.schemas.loot_system import LootSystemResponse
from dkpapi.schemas.points import DecayRunResponse


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def mock_loot_system_service(app):
    service = Mock()
    app.container.services.loot_system_service.override(service)
    yield service
    app.container.services.loot_system_service.reset_override()


@pytest.fixture
def mock_decay_service(app):
    service = Mock()
    app.container.services.decay_service.override(service)
    yield service
    app.container.services.decay_service.reset_override()


@pytest.fixture
def mock_db(app):
    db = Mock()
    app.container.repositories.get_db.override(db)
    yield db
    app.container.repositories.get_db.reset_override()


def system(**overrides):
    fields = dict(
        id=1,
        group_id="guild-1",
        name="Main DKP",
        system_type=LootSystemType.DKP,
        is_active=True,
        starting_points=0,
        decay_enabled=False,
        decay_rate=Decimal("0"),
        decay_minimum=0,
        raid_attendance_points=10,
        siege_attendance_points=0,
        boss_kill_points=0,
    )
    fields.update(overrides)
    return LootSystemResponse(**fields)


class TestLootSystemRoutes:
    """루트 시스템 라우터 테스트"""

    def test_create_loot_system(self, client, admin_headers, mock_loot_system_service):
        # Given
        mock_loot_system_service.create_system.return_value = system()

        # When
        response = client.post(
            "/api/v1/loot-systems?group_id=guild-1",
            json={"name": "Main DKP", "raid_attendance_points": 10},
            headers=admin_headers,
        )

        # Then
        assert response.status_code == 201
        assert response.json()["is_active"] is True
        group_id, config = mock_loot_system_service.create_system.call_args[0]
        assert group_id == "guild-1"
        assert config.raid_attendance_points == 10

    def test_create_rejects_invalid_decay_rate(
        self, client, admin_headers, mock_loot_system_service
    ):
        response = client.post(
            "/api/v1/loot-systems?group_id=guild-1",
            json={"name": "Main DKP", "decay_rate": 150},
            headers=admin_headers,
        )

        assert response.status_code == 422
        mock_loot_system_service.create_system.assert_not_called()

    def test_create_conflict(self, client, admin_headers, mock_loot_system_service):
        mock_loot_system_service.create_system.side_effect = ConflictError()

        response = client.post(
            "/api/v1/loot-systems?group_id=guild-1",
            json={"name": "Main DKP"},
            headers=admin_headers,
        )

        assert response.status_code == 409

    def test_get_active_system_missing(self, client, member_headers, mock_loot_system_service):
        mock_loot_system_service.get_active_system.side_effect = NoActiveSystemError()

        response = client.get(
            "/api/v1/loot-systems/active?group_id=guild-9", headers=member_headers
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "LOOT_001"

    def test_update_requires_admin(self, client, member_headers, mock_loot_system_service):
        response = client.patch(
            "/api/v1/loot-systems/1", json={"name": "Renamed"}, headers=member_headers
        )

        assert response.status_code == 403
        mock_loot_system_service.update_system.assert_not_called()

    def test_run_decay(self, client, admin_headers, mock_decay_service):
        mock_decay_service.apply_decay.return_value = DecayRunResponse(
            loot_system_id=1,
            decay_enabled=True,
            accounts_processed=3,
            accounts_decayed=2,
            total_decay_requested=25,
            ran_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )

        response = client.post("/api/v1/loot-systems/1/decay", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["accounts_decayed"] == 2
        mock_decay_service.apply_decay.assert_called_once_with(1)


class TestHealthRoute:
    def test_health_ok(self, client, mock_db):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        mock_db.execute.assert_called_once()
