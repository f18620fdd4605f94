"""
Tests for the inverter registry (service and /v1/inverters endpoints).

CHANGELOG:
- 2026-10-13: Initial creation (STORY-106)

TODO:
- None
"""

from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from pv_analytics.api.deps import get_db
from pv_analytics.api.main import app
from pv_analytics.services.errors import (
    ConflictError,
    InvalidReferenceError,
    NotFoundError,
)
from pv_analytics.services.inverters import (
    create_inverter,
    get_inverter,
    map_external_ids,
)

AUTH_HEADER = {"Authorization": "Bearer test-token-abc"}
CREATED = datetime(2026, 10, 13, 9, 0, tzinfo=UTC)


def _inverter(
    inverter_id: int = 10, external_id: int = 1, plant_id: int = 1
) -> SimpleNamespace:
    return SimpleNamespace(
        id=inverter_id,
        external_id=external_id,
        name=f"Inversor {external_id}",
        plant_id=plant_id,
        plant=SimpleNamespace(id=plant_id, name="Usina Norte"),
        created_at=CREATED,
    )


def _override_db(session: AsyncMock) -> None:
    async def _get_db():
        yield session

    app.dependency_overrides[get_db] = _get_db


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class TestInverterService:
    """Tests for pv_analytics.services.inverters with a mocked session."""

    @pytest.mark.asyncio
    async def test_get_missing_inverter_not_found(self, mock_db_session) -> None:
        result = MagicMock()
        result.scalar_one_or_none.return_value = None
        mock_db_session.execute = AsyncMock(return_value=result)

        with pytest.raises(NotFoundError, match='Inverter with ID "5" not found.'):
            await get_inverter(mock_db_session, 5)

    @pytest.mark.asyncio
    async def test_create_with_unknown_plant_rejected(self, mock_db_session) -> None:
        mock_db_session.get = AsyncMock(return_value=None)

        with pytest.raises(InvalidReferenceError, match="Cannot assign inverter"):
            await create_inverter(mock_db_session, 1, "Inversor 1", 99)
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_duplicate_external_id_conflicts(
        self, mock_db_session
    ) -> None:
        mock_db_session.get = AsyncMock(return_value=SimpleNamespace(id=1))
        taken = MagicMock()
        taken.scalar_one_or_none.return_value = 10
        mock_db_session.execute = AsyncMock(return_value=taken)

        with pytest.raises(ConflictError):
            await create_inverter(mock_db_session, 1, "Inversor 1", 1)

    @pytest.mark.asyncio
    async def test_map_external_ids(self, mock_db_session) -> None:
        result = MagicMock()
        result.all.return_value = [(1, 10), (2, 11)]
        mock_db_session.execute = AsyncMock(return_value=result)

        mapping = await map_external_ids(mock_db_session, [1, 2, 3, 1])

        assert mapping == {1: 10, 2: 11}

    @pytest.mark.asyncio
    async def test_map_no_ids_skips_query(self, mock_db_session) -> None:
        assert await map_external_ids(mock_db_session, []) == {}
        mock_db_session.execute.assert_not_awaited()


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------


class TestInverterEndpoints:
    """Tests for /v1/inverters with the service functions patched."""

    def test_create_returns_plant_name(
        self, client: TestClient, mock_db_session
    ) -> None:
        _override_db(mock_db_session)
        with patch(
            "pv_analytics.api.inverters.create_inverter",
            AsyncMock(return_value=_inverter()),
        ):
            response = client.post(
                "/v1/inverters",
                json={"external_id": 1, "name": "Inversor 1", "plant_id": 1},
                headers=AUTH_HEADER,
            )

        assert response.status_code == 201
        body = response.json()
        assert body["id"] == 10
        assert body["external_id"] == 1
        assert body["plant_name"] == "Usina Norte"

    def test_create_unknown_plant_returns_400(
        self, client: TestClient, mock_db_session
    ) -> None:
        _override_db(mock_db_session)
        with patch(
            "pv_analytics.api.inverters.create_inverter",
            AsyncMock(side_effect=InvalidReferenceError("no plant")),
        ):
            response = client.post(
                "/v1/inverters",
                json={"external_id": 1, "name": "Inversor 1", "plant_id": 99},
                headers=AUTH_HEADER,
            )

        assert response.status_code == 400

    def test_create_invalid_payload_returns_422(
        self, client: TestClient, mock_db_session
    ) -> None:
        _override_db(mock_db_session)
        response = client.post(
            "/v1/inverters",
            json={"external_id": 0, "name": "", "plant_id": 1},
            headers=AUTH_HEADER,
        )
        assert response.status_code == 422

    def test_list_filters_by_plant(self, client: TestClient, mock_db_session) -> None:
        _override_db(mock_db_session)
        with patch(
            "pv_analytics.api.inverters.list_inverters",
            AsyncMock(return_value=[_inverter(10, 1), _inverter(11, 2)]),
        ) as mock_list:
            response = client.get(
                "/v1/inverters", params={"plant_id": 1}, headers=AUTH_HEADER
            )

        assert response.status_code == 200
        assert [i["id"] for i in response.json()] == [10, 11]
        mock_list.assert_awaited_once_with(mock_db_session, 1)

    def test_get_missing_returns_404(self, client: TestClient, mock_db_session) -> None:
        _override_db(mock_db_session)
        with patch(
            "pv_analytics.api.inverters.get_inverter",
            AsyncMock(side_effect=NotFoundError("inverter", 5)),
        ):
            response = client.get("/v1/inverters/5", headers=AUTH_HEADER)

        assert response.status_code == 404

    def test_patch_passes_only_set_fields(
        self, client: TestClient, mock_db_session
    ) -> None:
        _override_db(mock_db_session)
        with (
            patch(
                "pv_analytics.api.inverters.update_inverter",
                AsyncMock(return_value=_inverter(plant_id=2)),
            ) as mock_update,
            patch(
                "pv_analytics.api.inverters.invalidate_inverter_cache", AsyncMock()
            ) as mock_invalidate,
        ):
            response = client.patch(
                "/v1/inverters/10", json={"plant_id": 2}, headers=AUTH_HEADER
            )

        assert response.status_code == 200
        mock_update.assert_awaited_once_with(mock_db_session, 10, plant_id=2)
        mock_invalidate.assert_awaited_once_with([10])

    def test_delete_returns_204(self, client: TestClient, mock_db_session) -> None:
        _override_db(mock_db_session)
        with (
            patch("pv_analytics.api.inverters.delete_inverter", AsyncMock()),
            patch(
                "pv_analytics.api.inverters.invalidate_inverter_cache", AsyncMock()
            ) as mock_invalidate,
        ):
            response = client.delete("/v1/inverters/10", headers=AUTH_HEADER)

        assert response.status_code == 204
        mock_invalidate.assert_awaited_once_with([10])
