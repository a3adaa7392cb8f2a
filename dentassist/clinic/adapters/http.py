import datetime as dt
from typing import Any

import httpx
from loguru import logger

from dentassist.domain.exceptions import (
    AppointmentCreationError,
    BookingValidationError,
    ClinicError,
    ClinicUnavailableError,
    DoctorUnavailableError,
    NotificationError,
    SlotUnavailableError,
)
from dentassist.domain.models import Appointment, AppointmentRequest, Doctor
from dentassist.notifications.email import ConfirmationEmail


def _detail(resp: httpx.Response) -> str:
    """Pull the error message out of a FastAPI error body."""
    try:
        body: Any = resp.json()
    except ValueError:
        return resp.text or resp.reason_phrase
    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, list):
        return "; ".join(str(item.get("msg", item)) for item in detail if isinstance(item, dict))
    return str(detail or resp.reason_phrase)


class HttpClinicClient:
    """Clinic client via the DentAssist HTTP API.

    The identity of the signed-in patient travels in the headers the API
    expects from the identity provider's edge.
    """

    def __init__(
        self,
        base_url: str,
        *,
        user_id: str = "",
        user_email: str = "",
        timeout: float = 30.0,
        user_id_header: str = "X-User-Id",
        email_header: str = "X-User-Email",
    ) -> None:
        headers: dict[str, str] = {}
        if user_id:
            headers[user_id_header] = user_id
        if user_email:
            headers[email_header] = user_email
        self._client = httpx.AsyncClient(base_url=base_url, headers=headers, timeout=timeout)

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise ClinicUnavailableError(f"DentAssist API request failed: {exc}") from exc

    def _raise_for_status(self, resp: httpx.Response) -> None:
        if resp.is_success:
            return
        detail = _detail(resp)
        if resp.status_code == 401:
            raise ClinicError(f"Not authenticated: {detail}")
        if resp.status_code in {400, 422}:
            raise BookingValidationError(detail)
        raise ClinicUnavailableError(f"DentAssist API error {resp.status_code}: {detail}")

    async def list_doctors(self, *, active_only: bool = False) -> list[Doctor]:
        url = "/api/doctors/available" if active_only else "/api/admin/doctors"
        resp = await self._request("GET", url)
        self._raise_for_status(resp)
        return [Doctor.model_validate(item) for item in resp.json()]

    async def list_booked_slots(self, doctor_id: str, date: dt.date) -> set[str]:
        resp = await self._request(
            "GET",
            "/api/appointments/booked-slots",
            params={"doctor_id": doctor_id, "date": date.isoformat()},
        )
        self._raise_for_status(resp)
        return set(resp.json().get("slots") or [])

    async def create_appointment(self, request: AppointmentRequest) -> Appointment:
        resp = await self._request(
            "POST",
            "/api/appointments",
            json={
                "doctor_id": request.doctor_id,
                "date": request.date.isoformat(),
                "time": request.time,
                "reason": request.reason,
            },
        )
        if resp.status_code == 409:
            raise SlotUnavailableError(request.doctor_id, request.date.isoformat(), request.time)
        if resp.status_code == 404:
            raise DoctorUnavailableError(request.doctor_id)
        if resp.status_code >= 500:
            raise AppointmentCreationError(reason=_detail(resp), doctor_id=request.doctor_id)
        self._raise_for_status(resp)
        return Appointment.model_validate(resp.json())

    async def list_appointments(self, patient_email: str | None = None) -> list[Appointment]:
        url = "/api/admin/appointments" if patient_email is None else "/api/appointments/me"
        resp = await self._request("GET", url)
        self._raise_for_status(resp)
        return [Appointment.model_validate(item) for item in resp.json()]

    async def send_confirmation(self, email: ConfirmationEmail) -> None:
        try:
            resp = await self._client.post(
                "/api/send-appointment-email", json=email.model_dump(mode="json")
            )
        except httpx.HTTPError as exc:
            raise NotificationError(f"Confirmation email request failed: {exc}") from exc
        if not resp.is_success:
            raise NotificationError(f"Failed to send confirmation email: {_detail(resp)}")

    async def health_check(self) -> bool:
        try:
            resp = await self._client.get("/health")
            return resp.is_success
        except Exception as exc:
            logger.warning("DentAssist API health check failed: {}", exc)
            return False

    async def close(self) -> None:
        await self._client.aclose()
        logger.info("DentAssist API client closed")
