"""Capability checks run before a scheduling operation is invoked.

Every check returns an ``AccessDecision``; ``require`` turns a denial into a
``ForbiddenError`` at the route boundary.
"""

import enum
from dataclasses import dataclass

from clinic_backend.core.errors import ForbiddenError
from clinic_backend.models.appointment import Appointment, AppointmentStatus
from clinic_backend.models.user import ROLE_ADMIN, ROLE_DOCTOR, ROLE_PATIENT


class AccessDecision(str, enum.Enum):
    ALLOW = "allow"
    DENY = "deny"


@dataclass(frozen=True)
class Caller:
    user_id: int
    email: str
    role: str
    patient_id: int | None = None
    doctor_id: int | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_doctor(self) -> bool:
        return self.role == ROLE_DOCTOR

    @property
    def is_patient(self) -> bool:
        return self.role == ROLE_PATIENT


def _decide(allowed: bool) -> AccessDecision:
    return AccessDecision.ALLOW if allowed else AccessDecision.DENY


def _owns(caller: Caller, appointment: Appointment) -> bool:
    if caller.is_patient:
        return caller.patient_id is not None and appointment.patient_id == caller.patient_id
    if caller.is_doctor:
        return caller.doctor_id is not None and appointment.doctor_id == caller.doctor_id
    return False


def authorize_create(caller: Caller, patient_id: int, doctor_id: int) -> AccessDecision:
    if caller.is_admin:
        return AccessDecision.ALLOW
    if caller.is_patient:
        return _decide(caller.patient_id is not None and caller.patient_id == patient_id)
    if caller.is_doctor:
        return _decide(caller.doctor_id is not None and caller.doctor_id == doctor_id)
    return AccessDecision.DENY


def authorize_view(caller: Caller, appointment: Appointment) -> AccessDecision:
    return _decide(caller.is_admin or _owns(caller, appointment))


def authorize_reschedule(caller: Caller, appointment: Appointment) -> AccessDecision:
    return _decide(caller.is_admin or _owns(caller, appointment))


def authorize_status_update(caller: Caller, appointment: Appointment, new_status: str) -> AccessDecision:
    if caller.is_admin:
        return AccessDecision.ALLOW
    if caller.is_doctor:
        return _decide(_owns(caller, appointment))
    if caller.is_patient:
        cancelling = (new_status or '').strip().lower() == AppointmentStatus.CANCELLED.value.lower()
        return _decide(cancelling and _owns(caller, appointment))
    return AccessDecision.DENY


def authorize_delete(caller: Caller) -> AccessDecision:
    return _decide(caller.is_admin)


def scope_filter(
    caller: Caller,
    doctor_id: int | None,
    patient_id: int | None,
) -> tuple[AccessDecision, int | None, int | None]:
    """Return the decision plus the doctor/patient ids the query is narrowed to."""
    if caller.is_admin:
        return AccessDecision.ALLOW, doctor_id, patient_id
    if caller.is_doctor:
        if caller.doctor_id is None or (doctor_id is not None and doctor_id != caller.doctor_id):
            return AccessDecision.DENY, doctor_id, patient_id
        return AccessDecision.ALLOW, caller.doctor_id, patient_id
    if caller.is_patient:
        if caller.patient_id is None or (patient_id is not None and patient_id != caller.patient_id):
            return AccessDecision.DENY, doctor_id, patient_id
        return AccessDecision.ALLOW, doctor_id, caller.patient_id
    return AccessDecision.DENY, doctor_id, patient_id


def authorize_working_hours_update(caller: Caller, doctor_id: int) -> AccessDecision:
    return _decide(caller.is_admin or (caller.is_doctor and caller.doctor_id == doctor_id))


def require(decision: AccessDecision, detail: str) -> None:
    if decision is not AccessDecision.ALLOW:
        raise ForbiddenError(detail)
