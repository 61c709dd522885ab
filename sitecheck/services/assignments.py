"""Site assignment lifecycle: pending -> in_progress -> done, or pending -> done."""
import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from sitecheck.database import async_session
from sitecheck.models.assignment import SiteAssignment
from sitecheck.utils.exceptions import AssignmentLinkError, InvalidTransitionError, NotFoundError

logger = logging.getLogger(__name__)


class AssignmentStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    DONE = "done"


TRANSITIONS: dict[AssignmentStatus, frozenset[AssignmentStatus]] = {
    AssignmentStatus.PENDING: frozenset({AssignmentStatus.IN_PROGRESS, AssignmentStatus.DONE}),
    AssignmentStatus.IN_PROGRESS: frozenset({AssignmentStatus.DONE}),
    AssignmentStatus.DONE: frozenset(),
}


def check_transition(current: str, target: str) -> AssignmentStatus:
    current, target = AssignmentStatus(current), AssignmentStatus(target)
    if target not in TRANSITIONS[current]:
        raise InvalidTransitionError(
            f"Transição inválida: {current.value} para {target.value}"
        )
    return target


def _now() -> datetime:
    return datetime.now(timezone.utc)


def is_overdue(assignment, now: Optional[datetime] = None) -> bool:
    """Deadline passed and not done. Date-only deadlines cover their whole day."""
    if assignment.status == AssignmentStatus.DONE.value or not assignment.deadline:
        return False
    now = now or _now()
    deadline = datetime.fromisoformat(assignment.deadline)
    if len(assignment.deadline) == 10:
        return deadline.date() < now.date()
    if deadline.tzinfo is None:
        deadline = deadline.replace(tzinfo=timezone.utc)
    return deadline < now


class AssignmentUpdater(Protocol):
    async def update_status(
        self,
        assignment_id: str,
        status: AssignmentStatus,
        completed_at: Optional[str] = None,
        report_id: Optional[str] = None,
    ) -> None: ...


class SqlAssignmentRepository:
    def __init__(self, session_factory=async_session):
        self._session_factory = session_factory

    async def create(
        self, site_id: str, technician_id: str, assigned_by: str, deadline: str
    ) -> SiteAssignment:
        now = _now().isoformat()
        assignment = SiteAssignment(
            id=str(uuid.uuid4()),
            site_id=site_id,
            technician_id=technician_id,
            assigned_by=assigned_by,
            deadline=deadline,
            status=AssignmentStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        async with self._session_factory() as session:
            session.add(assignment)
            await session.commit()
            await session.refresh(assignment)
        logger.info("Assignment %s created for site %s", assignment.id, site_id)
        return assignment

    async def list_assignments(self, technician_id: Optional[str] = None) -> list[SiteAssignment]:
        query = select(SiteAssignment).order_by(SiteAssignment.deadline)
        if technician_id:
            query = query.where(SiteAssignment.technician_id == technician_id)
        async with self._session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def start(self, assignment_id: str) -> SiteAssignment:
        async with self._session_factory() as session:
            assignment = await session.get(SiteAssignment, assignment_id)
            if assignment is None:
                raise NotFoundError("Atribuição não encontrada")
            if assignment.status == AssignmentStatus.IN_PROGRESS.value:
                return assignment
            check_transition(assignment.status, AssignmentStatus.IN_PROGRESS)
            assignment.status = AssignmentStatus.IN_PROGRESS.value
            assignment.updated_at = _now().isoformat()
            await session.commit()
            await session.refresh(assignment)
        return assignment

    async def update_status(
        self,
        assignment_id: str,
        status: AssignmentStatus,
        completed_at: Optional[str] = None,
        report_id: Optional[str] = None,
    ) -> None:
        """Partial update: only the given fields change."""
        try:
            async with self._session_factory() as session:
                assignment = await session.get(SiteAssignment, assignment_id)
                if assignment is None:
                    raise NotFoundError("Atribuição não encontrada")
                assignment.status = check_transition(assignment.status, status).value
                if completed_at is not None:
                    assignment.completed_at = completed_at
                if report_id is not None:
                    assignment.report_id = report_id
                assignment.updated_at = _now().isoformat()
                await session.commit()
        except SQLAlchemyError as e:
            raise AssignmentLinkError(f"Falha ao atualizar atribuição: {e}") from e
        logger.info("Assignment %s moved to %s", assignment_id, AssignmentStatus(status).value)
