import pytest
from datetime import datetime, timezone
from unittest.mock import Mock
from fastapi.testclient import TestClient

from dkpapi.core.exceptions import LootAlreadyDistributedError, LootNotFoundError
from dkpapi.main import create_app
from dkpapi.models import ItemRarity
from dkpapi.schemas.loot import LootAward, LootHistoryResponse, LootRecordResponse


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def mock_loot_service(app):
    service = Mock()
    app.container.services.loot_service.override(service)
    yield service
    app.container.services.loot_service.reset_override()


def record(**overrides):
    fields = dict(
        id=3,
        loot_system_id=1,
        item_name="Sword of Dawn",
        item_rarity=ItemRarity.EPIC,
        dkp_cost=0,
        dropped_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )
    fields.update(overrides)
    return LootRecordResponse(**fields)


class TestLootRoutes:
    """루트 라우터 테스트"""

    def test_record_drop_with_award(self, client, admin_headers, mock_loot_service):
        # Given
        mock_loot_service.record_drop.return_value = record(
            awarded_to="char-1",
            awarded_by="officer-1",
            dkp_cost=40,
            distributed_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )

        # When
        response = client.post(
            "/api/v1/loot-systems/1/loot",
            json={
                "item": {"item_name": "Sword of Dawn", "item_rarity": "epic"},
                "award": {"character_id": "char-1", "cost": 40},
            },
            headers=admin_headers,
        )

        # Then
        assert response.status_code == 201
        assert response.json()["awarded_to"] == "char-1"
        _, kwargs = mock_loot_service.record_drop.call_args
        assert kwargs["award"] == LootAward(character_id="char-1", cost=40)
        assert kwargs["awarded_by"] == "officer-1"

    def test_record_drop_rejects_negative_cost(self, client, admin_headers, mock_loot_service):
        response = client.post(
            "/api/v1/loot-systems/1/loot",
            json={
                "item": {"item_name": "Sword of Dawn", "item_rarity": "epic"},
                "award": {"character_id": "char-1", "cost": -5},
            },
            headers=admin_headers,
        )

        assert response.status_code == 422
        mock_loot_service.record_drop.assert_not_called()

    def test_distribute_already_distributed(self, client, admin_headers, mock_loot_service):
        mock_loot_service.distribute.side_effect = LootAlreadyDistributedError()

        response = client.post(
            "/api/v1/loot/3/distribute",
            json={"character_id": "char-2", "cost": 10},
            headers=admin_headers,
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "LOOT_003"

    def test_get_unknown_loot(self, client, member_headers, mock_loot_service):
        mock_loot_service.get_loot.side_effect = LootNotFoundError()

        response = client.get("/api/v1/loot/99", headers=member_headers)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "LOOT_002"

    def test_history_filters(self, client, member_headers, mock_loot_service):
        mock_loot_service.history.return_value = LootHistoryResponse(
            loot_system_id=1, records=[record()], total_count=1, has_next=False
        )

        response = client.get(
            "/api/v1/loot-systems/1/loot?rarity=epic&search=sword&limit=5",
            headers=member_headers,
        )

        assert response.status_code == 200
        assert response.json()["records"][0]["item_rarity"] == "epic"
        mock_loot_service.history.assert_called_once_with(
            1, limit=5, offset=0, rarity=ItemRarity.EPIC, search="sword"
        )

    def test_undistribute(self, client, admin_headers, mock_loot_service):
        mock_loot_service.undistribute.return_value = record()

        response = client.post(
            "/api/v1/loot/3/undistribute",
            json={"reason": "wrong winner"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        mock_loot_service.undistribute.assert_called_once_with(3, reason="wrong winner")
