import datetime as dt

from loguru import logger
from sqlalchemy import Select, func, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import joinedload

from dentassist.clinic.adapters.tables import AppointmentRow, Base, DoctorRow, UserRow
from dentassist.domain.exceptions import (
    AppointmentNotFoundError,
    BookingValidationError,
    ClinicError,
    DoctorNotFoundError,
    DoctorUnavailableError,
    DuplicateDoctorError,
    SlotUnavailableError,
)
from dentassist.domain.models import (
    Appointment,
    AppointmentRequest,
    AppointmentStatus,
    Doctor,
    DoctorCreate,
    DoctorUpdate,
    Gender,
    User,
    UserProfile,
    UserRole,
)


def _to_doctor(row: DoctorRow, appointment_count: int = 0) -> Doctor:
    return Doctor(
        doctor_id=row.id,
        name=row.name,
        email=row.email,
        phone=row.phone,
        specialty=row.specialty,
        bio=row.bio,
        gender=Gender(row.gender),
        image_url=row.image_url,
        is_active=row.is_active,
        appointment_count=appointment_count,
        created_at=row.created_at,
    )


def _to_appointment(row: AppointmentRow, doctor: DoctorRow) -> Appointment:
    return Appointment(
        appointment_id=row.id,
        doctor_id=doctor.id,
        doctor_name=doctor.name,
        doctor_image_url=doctor.image_url,
        patient_email=row.patient_email,
        date=row.date,
        time=row.time,
        reason=row.reason,
        status=AppointmentStatus(row.status),
        created_at=row.created_at,
    )


def _to_user(row: UserRow) -> User:
    return User(
        user_id=row.id,
        external_id=row.external_id,
        email=row.email,
        first_name=row.first_name,
        last_name=row.last_name,
        phone=row.phone,
        role=UserRole(row.role),
    )


class SqlClinicClient:
    """Clinic data access over a relational database (SQLAlchemy async)."""

    def __init__(self, database_url: str, *, echo: bool = False) -> None:
        self._engine = create_async_engine(database_url, echo=echo, pool_pre_ping=True)
        self._sessions = async_sessionmaker(self._engine, expire_on_commit=False)

    async def create_schema(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ready")

    # Doctors

    def _doctors_with_counts(self) -> Select[tuple[DoctorRow, int]]:
        appointment_count = func.count(AppointmentRow.id)
        return (
            select(DoctorRow, appointment_count)
            .outerjoin(DoctorRow.appointments)
            .group_by(DoctorRow.id)
        )

    async def list_doctors(self, *, active_only: bool = False) -> list[Doctor]:
        stmt = self._doctors_with_counts().order_by(DoctorRow.created_at.desc())
        if active_only:
            stmt = stmt.where(DoctorRow.is_active.is_(True))
        async with self._sessions() as session:
            rows = (await session.execute(stmt)).all()
        return [_to_doctor(row, count) for row, count in rows]

    async def get_doctor(self, doctor_id: str) -> Doctor | None:
        stmt = self._doctors_with_counts().where(DoctorRow.id == doctor_id)
        async with self._sessions() as session:
            result = (await session.execute(stmt)).first()
        if result is None:
            return None
        row, count = result
        return _to_doctor(row, count)

    async def create_doctor(self, data: DoctorCreate) -> Doctor:
        row = DoctorRow(
            name=data.name,
            email=str(data.email),
            phone=data.phone,
            specialty=data.specialty,
            bio=data.bio,
            gender=data.gender.value,
            image_url=data.image_url,
            is_active=data.is_active,
        )
        try:
            async with self._sessions() as session, session.begin():
                session.add(row)
        except IntegrityError as exc:
            raise DuplicateDoctorError(str(data.email)) from exc

        logger.info("Doctor created: id={}", row.id)
        return _to_doctor(row)

    async def update_doctor(self, doctor_id: str, data: DoctorUpdate) -> Doctor:
        try:
            async with self._sessions() as session, session.begin():
                row = await session.get(DoctorRow, doctor_id)
                if row is None:
                    raise DoctorNotFoundError(doctor_id)

                if str(data.email) != row.email:
                    clash = await session.scalar(
                        select(DoctorRow.id).where(DoctorRow.email == str(data.email))
                    )
                    if clash is not None:
                        raise DuplicateDoctorError(str(data.email))

                row.name = data.name
                row.email = str(data.email)
                row.phone = data.phone
                row.specialty = data.specialty
                row.bio = data.bio
                row.gender = data.gender.value
                row.image_url = data.image_url
                row.is_active = data.is_active
        except IntegrityError as exc:
            raise DuplicateDoctorError(str(data.email)) from exc

        logger.info("Doctor updated: id={}", doctor_id)
        updated = await self.get_doctor(doctor_id)
        if updated is None:
            raise DoctorNotFoundError(doctor_id)
        return updated

    # Appointments

    async def list_booked_slots(self, doctor_id: str, date: dt.date) -> set[str]:
        stmt = select(AppointmentRow.time).where(
            AppointmentRow.doctor_id == doctor_id,
            AppointmentRow.date == date,
            AppointmentRow.status != AppointmentStatus.CANCELLED.value,
        )
        async with self._sessions() as session:
            return set((await session.scalars(stmt)).all())

    async def create_appointment(self, request: AppointmentRequest) -> Appointment:
        if not request.patient_email:
            raise BookingValidationError("A patient email is required to book an appointment.")

        row = AppointmentRow(
            doctor_id=request.doctor_id,
            patient_email=request.patient_email,
            date=request.date,
            time=request.time,
            reason=request.reason,
            status=AppointmentStatus.CONFIRMED.value,
        )
        try:
            async with self._sessions() as session, session.begin():
                doctor = await session.get(DoctorRow, request.doctor_id)
                if doctor is None or not doctor.is_active:
                    raise DoctorUnavailableError(request.doctor_id)
                session.add(row)
                await session.flush()
        except IntegrityError as exc:
            logger.info(
                "Slot conflict: doctor={}, date={}, time={}",
                request.doctor_id,
                request.date,
                request.time,
            )
            raise SlotUnavailableError(
                request.doctor_id, request.date.isoformat(), request.time
            ) from exc

        return _to_appointment(row, doctor)

    async def list_appointments(self, patient_email: str | None = None) -> list[Appointment]:
        stmt = (
            select(AppointmentRow)
            .options(joinedload(AppointmentRow.doctor))
            .order_by(AppointmentRow.created_at.desc())
        )
        if patient_email is not None:
            stmt = stmt.where(AppointmentRow.patient_email == patient_email)
        async with self._sessions() as session:
            rows = (await session.scalars(stmt)).all()
        return [_to_appointment(row, row.doctor) for row in rows]

    async def update_appointment_status(
        self, appointment_id: str, status: AppointmentStatus
    ) -> Appointment:
        async with self._sessions() as session, session.begin():
            row = await session.get(
                AppointmentRow, appointment_id, options=[joinedload(AppointmentRow.doctor)]
            )
            if row is None:
                raise AppointmentNotFoundError(appointment_id)
            slot = (row.doctor_id, row.date.isoformat(), row.time)
            row.status = status.value
            try:
                await session.flush()
            except IntegrityError as exc:
                raise SlotUnavailableError(*slot) from exc

        logger.info("Appointment {} marked {}", appointment_id, status.value)
        return _to_appointment(row, row.doctor)

    # Users

    async def upsert_user(self, profile: UserProfile) -> User:
        try:
            async with self._sessions() as session, session.begin():
                row = await self._find_user(session, profile.external_id)
                if row is None:
                    row = UserRow(external_id=profile.external_id, role=UserRole.USER.value)
                    session.add(row)
                row.email = str(profile.email)
                row.first_name = profile.first_name
                row.last_name = profile.last_name
                row.phone = profile.phone
        except IntegrityError as exc:
            raise ClinicError("This email is already linked to another account") from exc
        return _to_user(row)

    async def delete_user(self, external_id: str) -> bool:
        async with self._sessions() as session, session.begin():
            row = await self._find_user(session, external_id)
            if row is None:
                return False
            await session.delete(row)
        return True

    async def get_user(self, external_id: str) -> User | None:
        async with self._sessions() as session:
            row = await self._find_user(session, external_id)
        return _to_user(row) if row else None

    async def get_user_by_email(self, email: str) -> User | None:
        stmt = select(UserRow).where(func.lower(UserRow.email) == email.lower())
        async with self._sessions() as session:
            row = await session.scalar(stmt)
        return _to_user(row) if row else None

    async def set_user_role(self, external_id: str, role: UserRole) -> User | None:
        async with self._sessions() as session, session.begin():
            row = await self._find_user(session, external_id)
            if row is None:
                return None
            row.role = role.value
        return _to_user(row)

    async def _find_user(self, session: AsyncSession, external_id: str) -> UserRow | None:
        return await session.scalar(select(UserRow).where(UserRow.external_id == external_id))

    async def health_check(self) -> bool:
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as exc:
            logger.warning("Database health check failed: {}", exc)
            return False

    async def close(self) -> None:
        await self._engine.dispose()
        logger.info("Database engine disposed")
