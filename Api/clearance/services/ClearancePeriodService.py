from sqlmodel import Session, select
from fastapi import HTTPException
from datetime import datetime, timezone

from clearance.engine.ClearanceWindowEvaluator import ClearanceWindow, ClearanceWindowEvaluator, as_utc, effective_deadline
from clearance.models.ClearancePeriod import ClearancePeriod, ClearancePeriodCreate, ClearancePeriodRead
from clearance.services.LogService import LogService


class ClearancePeriodService:

    log_service = LogService()
    evaluator = ClearanceWindowEvaluator()

    def _get_or_404(self, session: Session, period_id: int) -> ClearancePeriod:
        period = session.get(ClearancePeriod, period_id)
        if not period:
            raise HTTPException(status_code=404, detail="Clearance period not found")
        return period

    def _save(self, session: Session, period: ClearancePeriod) -> ClearancePeriod:
        period.updated_at = datetime.now(timezone.utc)
        session.add(period)
        session.commit()
        session.refresh(period)
        return period

    def list_periods(self, *, session: Session) -> list[ClearancePeriod]:
        return list(session.exec(select(ClearancePeriod).order_by(ClearancePeriod.created_at.desc())).all())

    def get_current(self, *, session: Session) -> ClearancePeriod | None:
        """The active period, else the most recently created one, else None."""
        active = session.exec(
            select(ClearancePeriod)
            .where(ClearancePeriod.is_active == True)  # noqa: E712
            .order_by(ClearancePeriod.created_at.desc())
        ).first()
        if active:
            return active
        return session.exec(
            select(ClearancePeriod).order_by(ClearancePeriod.created_at.desc())
        ).first()

    def get_window(self, *, session: Session, now: datetime | None = None) -> tuple[ClearancePeriod | None, ClearanceWindow]:
        period = self.get_current(session=session)
        return period, self.evaluator.evaluate(period, now)

    def setup(self, *, session: Session, data: ClearancePeriodCreate, actor_id: str) -> ClearancePeriod:
        period = ClearancePeriod(
            academic_year=data.academic_year,
            semester_type=data.semester_type,
            deadline=as_utc(data.deadline),
            is_active=False,
            created_by=actor_id,
        )
        session.add(period)
        session.commit()
        session.refresh(period)

        self.log_service.create_log_entry(
            session=session,
            action="CLEARANCE_SETUP",
            description=f"User {actor_id} set up clearance {period.id} for {period.semester_type} {period.academic_year}",
            actor_id=actor_id,
        )
        return period

    def start(self, *, session: Session, period_id: int, actor_id: str) -> ClearancePeriod:
        period = self._get_or_404(session, period_id)

        other_active = session.exec(
            select(ClearancePeriod).where(
                ClearancePeriod.is_active == True,  # noqa: E712
                ClearancePeriod.id != period_id,
            )
        ).first()
        if other_active:
            self.log_service.create_log_entry(
                session=session,
                action="CLEARANCE_START_CONFLICT",
                description=f"User {actor_id} tried to start clearance {period_id} while {other_active.id} is active",
                actor_id=actor_id,
            )
            raise HTTPException(
                status_code=409,
                detail=f"Clearance {other_active.id} is already active; stop it first",
            )

        period.is_active = True
        period.start_date = datetime.now(timezone.utc)
        period = self._save(session, period)

        self.log_service.create_log_entry(
            session=session,
            action="CLEARANCE_STARTED",
            description=f"User {actor_id} started clearance {period.id}",
            actor_id=actor_id,
        )
        return period

    def stop(self, *, session: Session, period_id: int, actor_id: str) -> ClearancePeriod:
        period = self._get_or_404(session, period_id)
        period.is_active = False
        period = self._save(session, period)

        self.log_service.create_log_entry(
            session=session,
            action="CLEARANCE_STOPPED",
            description=f"User {actor_id} stopped clearance {period.id}",
            actor_id=actor_id,
        )
        return period

    def extend(self, *, session: Session, period_id: int, new_deadline: datetime, actor_id: str) -> ClearancePeriod:
        period = self._get_or_404(session, period_id)
        new_deadline = as_utc(new_deadline)
        current = effective_deadline(period)

        if new_deadline <= current:
            raise HTTPException(
                status_code=400,
                detail="New deadline must be after the current deadline",
            )

        period.extended_deadline = new_deadline
        period = self._save(session, period)

        self.log_service.create_log_entry(
            session=session,
            action="CLEARANCE_EXTENDED",
            description=f"User {actor_id} extended clearance {period.id} to {new_deadline.date().isoformat()}",
            actor_id=actor_id,
        )
        return period

    def delete(self, *, session: Session, period_id: int, actor_id: str) -> ClearancePeriodRead:
        period = self._get_or_404(session, period_id)
        deleted = ClearancePeriodRead.model_validate(period)
        session.delete(period)
        session.commit()

        self.log_service.create_log_entry(
            session=session,
            action="CLEARANCE_DELETED",
            description=f"User {actor_id} deleted clearance {period_id}",
            actor_id=actor_id,
        )
        return deleted
