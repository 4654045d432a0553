from typing import List, Optional

import structlog
from beanie import PydanticObjectId
from bson.errors import InvalidId
from pydantic import TypeAdapter

from app.core import cache
from app.modules.alerts.board import PatientStatusBoard
from app.modules.alerts.models import PatientSnapshot
from app.modules.notifications import builders
from app.modules.notifications.service import NotificationService
from app.modules.roster.models import DoctorPatientLink
from app.modules.users.service import UserService
from app.modules.vitals.service import VitalService
from app.shared.constants import LinkStatus, Role
from app.shared.exceptions import PersistenceError, RecipientResolutionError

log = structlog.get_logger()

_doctor_ids = TypeAdapter(List[str])

UNKNOWN_PATIENT = "Unknown Patient"


class RosterService:
    """Doctor <-> patient links and the doctor-facing roster view."""

    def __init__(
        self,
        users: Optional[UserService] = None,
        vitals: Optional[VitalService] = None,
        notifications: Optional[NotificationService] = None,
    ) -> None:
        self.users = users or UserService()
        self.vitals = vitals or VitalService()
        self.notifications = notifications or NotificationService()

    async def fetch_active_links(self, patient_id: str) -> List[str]:
        """Doctor ids with an active link to the patient.

        Raises RecipientResolutionError when the lookup itself fails.
        """
        try:
            version = await cache.get_roster_version(patient_id)
            return await cache.cached_json(
                f"roster:doctors:{patient_id}:v{version}",
                lambda: self._load_doctor_ids(patient_id),
                _doctor_ids,
            )
        except Exception as exc:
            raise RecipientResolutionError(patient_id, str(exc)) from exc

    async def fetch_display_name(self, user_id: str) -> str:
        try:
            name = await self.users.get_display_name(user_id)
        except Exception as exc:
            log.warning("roster.name_lookup_failed", user_id=user_id, error=str(exc))
            return UNKNOWN_PATIENT
        return name or UNKNOWN_PATIENT

    async def is_patient(self, user_id: str) -> bool:
        try:
            PydanticObjectId(user_id)
        except (InvalidId, TypeError):
            return False
        user = await self.users.get(user_id)
        return bool(user and Role.PATIENT in user.roles)

    async def link(self, doctor_id: str, patient_id: str) -> DoctorPatientLink:
        """Grant (or re-activate) a link; the doctor is told about the new patient."""
        existing = await DoctorPatientLink.find_one(
            DoctorPatientLink.doctor_id == doctor_id,
            DoctorPatientLink.patient_id == patient_id,
        )
        if existing and existing.status == LinkStatus.ACTIVE:
            return existing

        if existing:
            existing.status = LinkStatus.ACTIVE
            await existing.save()
            link = existing
        else:
            link = DoctorPatientLink(doctor_id=doctor_id, patient_id=patient_id)
            await link.insert()

        await cache.bump_roster_version(patient_id)
        log.info("roster.linked", doctor_id=doctor_id, patient_id=patient_id)

        patient_name = await self.fetch_display_name(patient_id)
        try:
            await self.notifications.persist(
                builders.new_patient_notification(doctor_id, patient_id, patient_name)
            )
        except PersistenceError as exc:
            log.warning("roster.new_patient_notify_failed", doctor_id=doctor_id, error=str(exc))
        return link

    async def unlink(self, doctor_id: str, patient_id: str) -> DoctorPatientLink | None:
        existing = await DoctorPatientLink.find_one(
            DoctorPatientLink.doctor_id == doctor_id,
            DoctorPatientLink.patient_id == patient_id,
        )
        if not existing:
            return None
        if existing.status == LinkStatus.ACTIVE:
            existing.status = LinkStatus.INACTIVE
            await existing.save()
            await cache.bump_roster_version(patient_id)
            log.info("roster.unlinked", doctor_id=doctor_id, patient_id=patient_id)
        return existing

    async def list_patient_ids(self, doctor_id: str) -> List[str]:
        links = await DoctorPatientLink.find(
            DoctorPatientLink.doctor_id == doctor_id,
            DoctorPatientLink.status == LinkStatus.ACTIVE,
        ).to_list()
        return list(dict.fromkeys(link.patient_id for link in links))

    async def list_active_links(self) -> List[DoctorPatientLink]:
        return await DoctorPatientLink.find(
            DoctorPatientLink.status == LinkStatus.ACTIVE
        ).to_list()

    async def build_board(self, doctor_id: str) -> PatientStatusBoard:
        """Status board seeded with the latest reading per type of every linked patient."""
        board = PatientStatusBoard()
        for patient_id in await self.list_patient_ids(doctor_id):
            board.track(patient_id, await self.fetch_display_name(patient_id))
            latest = await self.vitals.get_latest_by_type(patient_id)
            board.apply_many(latest.values())
        return board

    async def build_snapshots(self, doctor_id: str) -> List[PatientSnapshot]:
        board = await self.build_board(doctor_id)
        return board.snapshots()

    async def _load_doctor_ids(self, patient_id: str) -> List[str]:
        links = await DoctorPatientLink.find(
            DoctorPatientLink.patient_id == patient_id,
            DoctorPatientLink.status == LinkStatus.ACTIVE,
        ).to_list()
        return list(dict.fromkeys(link.doctor_id for link in links))


def get_roster_service() -> RosterService:
    return RosterService()
