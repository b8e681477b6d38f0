"""Tests for the physiological validation API endpoints."""

import pytest
from httpx import AsyncClient

PREFIX = "/api/v1/validation"


class TestValueEndpoint:
    """Test POST /validation/value."""

    @pytest.mark.asyncio
    async def test_normal_value(self, client: AsyncClient) -> None:
        response = await client.post(f"{PREFIX}/value", json={"type": "sbp", "value": 120})
        assert response.status_code == 200
        data = response.json()
        assert data["is_valid"] is True
        assert data["is_critical"] is False
        assert data["details"]["type"] == "normal"

    @pytest.mark.asyncio
    async def test_impossible_value(self, client: AsyncClient) -> None:
        data = (await client.post(f"{PREFIX}/value", json={"type": "bmi", "value": 5})).json()
        assert data["is_valid"] is False
        assert data["is_critical"] is True
        assert "physiologically impossible" in data["message"]

    @pytest.mark.asyncio
    async def test_gender_specific_threshold(self, client: AsyncClient) -> None:
        payload = {"type": "waist_circ_cm", "value": 95, "gender": "female"}
        data = (await client.post(f"{PREFIX}/value", json=payload)).json()
        assert data["is_warning"] is True

    @pytest.mark.asyncio
    async def test_missing_value(self, client: AsyncClient) -> None:
        data = (await client.post(f"{PREFIX}/value", json={"type": "sbp", "value": None})).json()
        assert data["is_valid"] is False
        assert data["details"]["type"] == "invalid_input"

    @pytest.mark.asyncio
    async def test_unknown_type_passes(self, client: AsyncClient) -> None:
        data = (await client.post(f"{PREFIX}/value", json={"type": "sodium", "value": 140})).json()
        assert data["is_valid"] is True


class TestCompositeEndpoints:
    """Test the blood pressure, ratio and BMI endpoints."""

    @pytest.mark.asyncio
    async def test_blood_pressure_category(self, client: AsyncClient) -> None:
        response = await client.post(f"{PREFIX}/blood-pressure", json={"sbp": 150, "dbp": 95})
        assert response.status_code == 200
        data = response.json()
        assert data["details"]["category"] == "Stage 2 Hypertension"
        assert data["details"]["pulse_pressure"] == 55

    @pytest.mark.asyncio
    async def test_blood_pressure_inverted(self, client: AsyncClient) -> None:
        data = (await client.post(f"{PREFIX}/blood-pressure", json={"sbp": 80, "dbp": 90})).json()
        assert data["is_valid"] is False
        assert data["details"]["type"] == "invalid_bp_relationship"

    @pytest.mark.asyncio
    async def test_cholesterol_ratio(self, client: AsyncClient) -> None:
        data = (await client.post(f"{PREFIX}/cholesterol-ratio", json={"total": 7.0, "hdl": 1.0})).json()
        assert data["details"]["ratio"] == pytest.approx(7.0)
        assert data["is_warning"] is True

    @pytest.mark.asyncio
    async def test_bmi(self, client: AsyncClient) -> None:
        data = (await client.post(f"{PREFIX}/bmi", json={"weight_kg": 80, "height_cm": 160})).json()
        assert data["is_valid"] is True
        assert "Obese" in data["message"]


class TestPatientEndpoint:
    """Test POST /validation/patient."""

    @pytest.mark.asyncio
    async def test_reference_patient(self, client: AsyncClient, reference_patient_data: dict) -> None:
        response = await client.post(f"{PREFIX}/patient", json=reference_patient_data)
        assert response.status_code == 200
        data = response.json()
        assert data["is_valid"] is True
        assert data["has_critical"] is False
        assert {"age", "sbp", "dbp", "total_chol_mmol", "hdl_mmol", "bmi"} <= set(data["fields"])
        assert set(data["composites"]) == {"blood_pressure", "cholesterol_ratio", "bmi"}
        assert data["implausible_combinations"] == []

    @pytest.mark.asyncio
    async def test_implausible_lipids(self, client: AsyncClient, reference_patient_data: dict) -> None:
        reference_patient_data.update({"total_chol": 2.5, "hdl": 2.8})
        data = (await client.post(f"{PREFIX}/patient", json=reference_patient_data)).json()
        assert "Total cholesterol is lower than HDL cholesterol" in data["implausible_combinations"]


class TestRangeEndpoints:
    """Test GET /validation/ranges."""

    @pytest.mark.asyncio
    async def test_list_ranges(self, client: AsyncClient) -> None:
        data = (await client.get(f"{PREFIX}/ranges")).json()
        assert data["total_count"] == len(data["ranges"])
        assert any(r["type"] == "egfr" for r in data["ranges"])

    @pytest.mark.asyncio
    async def test_get_range(self, client: AsyncClient) -> None:
        response = await client.get(f"{PREFIX}/ranges/sbp")
        assert response.status_code == 200
        assert response.json()["unit"] == "mmHg"

    @pytest.mark.asyncio
    async def test_unknown_range_returns_404(self, client: AsyncClient) -> None:
        response = await client.get(f"{PREFIX}/ranges/sodium")
        assert response.status_code == 404
        assert response.json()["detail"] == "Unknown measurement type 'sodium'"
