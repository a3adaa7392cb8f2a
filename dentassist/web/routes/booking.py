from fastapi import APIRouter, Depends, HTTPException, Query, status
from loguru import logger

from dentassist.clinic.service import ClinicService
from dentassist.domain.models import Appointment, AppointmentRequest, Doctor
from dentassist.notifications.email import ConfirmationEmail, ResendEmailSender
from dentassist.web.dependencies import get_clinic_service, get_current_user, get_email_sender
from dentassist.web.schemas import (
    AppointmentCreate,
    BookedSlotsResponse,
    CurrentUser,
    SendEmailRequest,
    SendEmailResponse,
)

router = APIRouter(prefix="/api", tags=["Booking"])


@router.get("/doctors/available", response_model=list[Doctor])
async def list_available_doctors(service: ClinicService = Depends(get_clinic_service)):
    """Active doctors, sorted by name."""
    return await service.list_available_doctors()


@router.get("/appointments/booked-slots", response_model=BookedSlotsResponse)
async def list_booked_slots(
    doctor_id: str = Query(""),
    date: str = Query(""),
    service: ClinicService = Depends(get_clinic_service),
):
    """Slot labels already taken for a doctor on a date. Empty when either is missing."""
    slots = await service.list_booked_slots(doctor_id or None, date)
    return BookedSlotsResponse(slots=sorted(slots))


@router.post("/appointments", response_model=Appointment, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    data: AppointmentCreate,
    user: CurrentUser = Depends(get_current_user),
    service: ClinicService = Depends(get_clinic_service),
):
    request = AppointmentRequest(
        doctor_id=data.doctor_id,
        date=data.date,
        time=data.time,
        reason=data.reason,
        patient_email=user.email,
    )
    return await service.book_appointment(request)


@router.get("/appointments/me", response_model=list[Appointment])
async def list_my_appointments(
    user: CurrentUser = Depends(get_current_user),
    service: ClinicService = Depends(get_clinic_service),
):
    return await service.list_patient_appointments(user.email)


@router.post("/send-appointment-email", response_model=SendEmailResponse)
async def send_appointment_email(
    data: SendEmailRequest,
    user: CurrentUser = Depends(get_current_user),
    sender: ResendEmailSender = Depends(get_email_sender),
):
    if data.missing_required():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields"
        )

    logger.info("Confirmation email requested by {}", user.external_id)
    email_id = await sender.send(ConfirmationEmail(**data.model_dump()))
    return SendEmailResponse(message="Email sent successfully", email_id=email_id)
