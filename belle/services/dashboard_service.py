"""
Dashboard aggregates for a day, week or month.
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from belle.core.policy import scope_statement
from belle.core.timeutils import clinic_now, period_bounds
from belle.models import (
    Appointment,
    AppointmentStatus,
    CashRegisterClosing,
    Patient,
    Procedure,
    Profile,
)

CENTS = Decimal("0.01")


def attendance_rate(completed: int, total: int) -> int:
    if not total:
        return 0
    rate = Decimal(100 * completed) / Decimal(total)
    return int(rate.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class DashboardService:

    async def get_dashboard(
        self,
        db: AsyncSession,
        identity,
        period: str = "day",
        reference_date: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        now = now or clinic_now()
        start, end = period_bounds(period, reference_date or now.date())

        in_period = scope_statement(
            select(Appointment.status, func.count(Appointment.id))
            .where(Appointment.appointment_date >= start, Appointment.appointment_date <= end)
            .group_by(Appointment.status),
            Appointment,
            identity,
        )
        counts = {status: count for status, count in (await db.execute(in_period)).all()}
        completed = counts.get(AppointmentStatus.COMPLETED.value, 0)
        total = sum(count for status, count in counts.items() if status != AppointmentStatus.CANCELLED.value)

        revenue_stmt = scope_statement(
            select(CashRegisterClosing.total_amount).where(
                CashRegisterClosing.closing_date >= start, CashRegisterClosing.closing_date <= end
            ),
            CashRegisterClosing,
            identity,
        )
        revenue = sum(
            (Decimal(amount) for amount in (await db.execute(revenue_stmt)).scalars().all()), Decimal("0")
        ).quantize(CENTS)

        upcoming_stmt = scope_statement(
            select(Appointment.id, Appointment.appointment_time, Patient.full_name, Procedure.name, Profile.full_name)
            .join(Patient, Patient.id == Appointment.patient_id)
            .join(Procedure, Procedure.id == Appointment.procedure_id)
            .join(Profile, Profile.id == Appointment.professional_id)
            .where(
                Appointment.appointment_date == now.date(),
                Appointment.appointment_time >= now.time().replace(second=0, microsecond=0),
                Appointment.status.in_([AppointmentStatus.SCHEDULED.value, AppointmentStatus.CONFIRMED.value]),
            )
            .order_by(Appointment.appointment_time)
            .limit(5),
            Appointment,
            identity,
        )
        upcoming = [
            {
                "id": appointment_id,
                "appointment_time": appointment_time,
                "patient_name": patient_name,
                "procedure_name": procedure_name,
                "professional_name": professional_name,
            }
            for appointment_id, appointment_time, patient_name, procedure_name, professional_name
            in (await db.execute(upcoming_stmt)).all()
        ]

        ranking_count = func.count(Appointment.id).label("count")
        ranking_stmt = scope_statement(
            select(Procedure.name, ranking_count)
            .select_from(Appointment)
            .join(Procedure, Procedure.id == Appointment.procedure_id)
            .where(
                Appointment.appointment_date >= start,
                Appointment.appointment_date <= end,
                Appointment.status == AppointmentStatus.COMPLETED.value,
            )
            .group_by(Procedure.id, Procedure.name)
            .order_by(ranking_count.desc(), Procedure.name)
            .limit(5),
            Appointment,
            identity,
        )
        top_procedures = [
            {"name": name, "count": count} for name, count in (await db.execute(ranking_stmt)).all()
        ]

        return {
            "period": period,
            "start_date": start,
            "end_date": end,
            "stats": {
                "completed_appointments": completed,
                "total_appointments": total,
                "attendance_rate": attendance_rate(completed, total),
                "total_revenue": revenue,
            },
            "upcoming_appointments": upcoming,
            "top_procedures": top_procedures,
        }


dashboard_service = DashboardService()
