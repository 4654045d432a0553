from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from app.modules.roster.service import RosterService
from app.modules.vitals.classifier import VitalType
from app.modules.vitals.service import VitalService
from app.shared.constants import Role


@pytest.mark.asyncio
async def test_doctor_sees_sorted_alerts_for_linked_patients(
    client: AsyncClient, create_user_func, auth_headers
) -> None:
    doctor = await create_user_func(roles=[Role.DOCTOR])
    critical = await create_user_func(profile={"full_name": "Ada Lovelace"})
    quiet = await create_user_func(profile={"full_name": "Alan Turing"})
    roster = RosterService()
    await roster.link(str(doctor.id), str(critical.id))
    await roster.link(str(doctor.id), str(quiet.id))
    await VitalService().submit_reading(str(critical.id), VitalType.HEART_RATE, 135)
    await VitalService().submit_reading(
        str(quiet.id),
        VitalType.HEART_RATE,
        70,
        recorded_at=datetime.now(timezone.utc) - timedelta(hours=30),
    )

    response = await client.get("/api/v1/alerts/", headers=auth_headers(doctor))

    assert response.status_code == 200
    alerts = response.json()
    assert [a["kind"] for a in alerts] == ["critical", "critical", "info"]
    assert {a["patientName"] for a in alerts[:2]} == {"Ada Lovelace"}
    assert alerts[2]["patientName"] == "Alan Turing"
    assert alerts[2]["actionRequired"] is False


@pytest.mark.asyncio
async def test_patients_cannot_list_doctor_alerts(
    client: AsyncClient, create_user_func, auth_headers
) -> None:
    patient = await create_user_func()

    response = await client.get("/api/v1/alerts/", headers=auth_headers(patient))

    assert response.status_code == 403
