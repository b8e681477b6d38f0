"""Tests for the unit conversion API endpoints."""

import pytest
from httpx import AsyncClient

PREFIX = "/api/v1/units"


class TestConvertEndpoint:
    """Test POST /units/convert."""

    @pytest.mark.asyncio
    async def test_convert_by_quantity(self, client: AsyncClient) -> None:
        payload = {"value": 5.0, "quantity": "cholesterol", "from_unit": "mmol/L", "to_unit": "mg/dL"}
        response = await client.post(f"{PREFIX}/convert", json=payload)
        assert response.status_code == 200
        data = response.json()
        assert data["converted"] == pytest.approx(193.35)
        assert data["from_unit"] == "mmol/L"

    @pytest.mark.asyncio
    async def test_convert_by_measurement_type(self, client: AsyncClient) -> None:
        payload = {"value": 125, "from_type": "lpa_nmol", "to_type": "lpa_mg"}
        data = (await client.post(f"{PREFIX}/convert", json=payload)).json()
        assert data["converted"] == pytest.approx(50)

    @pytest.mark.asyncio
    async def test_unsupported_pair_returns_422(self, client: AsyncClient) -> None:
        payload = {"value": 5.0, "quantity": "cholesterol", "from_unit": "mmol/L", "to_unit": "g/L"}
        response = await client.post(f"{PREFIX}/convert", json=payload)
        assert response.status_code == 422
        assert "No conversion available" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_cross_analyte_returns_422(self, client: AsyncClient) -> None:
        payload = {"value": 1.4, "from_type": "hdl_mmol", "to_type": "ldl_mg"}
        response = await client.post(f"{PREFIX}/convert", json=payload)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_incomplete_request_returns_400(self, client: AsyncClient) -> None:
        response = await client.post(f"{PREFIX}/convert", json={"value": 5.0, "quantity": "cholesterol"})
        assert response.status_code == 400


class TestSupportedEndpoint:
    """Test GET /units/supported."""

    @pytest.mark.asyncio
    async def test_lists_conversions(self, client: AsyncClient) -> None:
        data = (await client.get(f"{PREFIX}/supported")).json()
        assert data["total_count"] == len(data["conversions"])
        assert {"quantity": "lpa", "from_unit": "nmol/L", "to_unit": "mg/dL"} in data["conversions"]
