from fastapi import APIRouter, Depends, status

from dentassist.admin.service import AdminService
from dentassist.domain.models import Appointment, ClinicStats, Doctor, DoctorCreate, DoctorUpdate
from dentassist.web.dependencies import get_admin_service, require_admin
from dentassist.web.schemas import StatusUpdate

router = APIRouter(prefix="/api/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


@router.get("/doctors", response_model=list[Doctor])
async def list_doctors(admin: AdminService = Depends(get_admin_service)):
    return await admin.list_doctors()


@router.post("/doctors", response_model=Doctor, status_code=status.HTTP_201_CREATED)
async def create_doctor(data: DoctorCreate, admin: AdminService = Depends(get_admin_service)):
    return await admin.create_doctor(data)


@router.put("/doctors/{doctor_id}", response_model=Doctor)
async def update_doctor(
    doctor_id: str,
    data: DoctorUpdate,
    admin: AdminService = Depends(get_admin_service),
):
    return await admin.update_doctor(doctor_id, data)


@router.get("/appointments", response_model=list[Appointment])
async def list_appointments(admin: AdminService = Depends(get_admin_service)):
    return await admin.list_appointments()


@router.patch("/appointments/{appointment_id}/status", response_model=Appointment)
async def update_appointment_status(
    appointment_id: str,
    data: StatusUpdate,
    admin: AdminService = Depends(get_admin_service),
):
    return await admin.update_appointment_status(appointment_id, data.status)


@router.get("/stats", response_model=ClinicStats)
async def stats(admin: AdminService = Depends(get_admin_service)):
    """Totals for the admin dashboard."""
    return await admin.stats()
