"""Pytest configuration and fixtures for backend tests."""

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from cvdrisk.main import app
from cvdrisk.services.patient_input import PatientRiskInput


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create async test client against the ASGI app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def reference_patient_data() -> dict:
    """A 55-year-old non-smoking white man with average risk factors (mmol/L lipids)."""
    return {
        "age": 55,
        "sex": "male",
        "sbp": 130,
        "dbp": 80,
        "total_chol": 5.5,
        "hdl": 1.3,
        "height_cm": 178,
        "weight_kg": 80,
    }


@pytest.fixture
def reference_patient(reference_patient_data: dict) -> PatientRiskInput:
    return PatientRiskInput.from_dict(reference_patient_data)
