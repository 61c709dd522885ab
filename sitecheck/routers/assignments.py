from fastapi import APIRouter, Depends

from sitecheck.database import async_session
from sitecheck.dependencies import get_assignment_repository, get_current_user, get_privileged_user
from sitecheck.models.assignment import SiteAssignment
from sitecheck.models.site import Site
from sitecheck.models.user import User
from sitecheck.schemas.assignment import AssignmentCreate, AssignmentResponse
from sitecheck.services.assignments import SqlAssignmentRepository, is_overdue
from sitecheck.services.users import Role, is_privileged
from sitecheck.utils.exceptions import AuthorizationError, NotFoundError
from sitecheck.utils.response import success_response

router = APIRouter(prefix="/assignments", tags=["assignments"])


def _to_response(assignment) -> dict:
    data = AssignmentResponse.model_validate(assignment).model_dump()
    data["overdue"] = is_overdue(assignment)
    return data


@router.get("")
async def get_assignments(
    user: User = Depends(get_current_user),
    repo: SqlAssignmentRepository = Depends(get_assignment_repository),
):
    # technicians only see their own work
    technician_id = None if is_privileged(user) else user.id
    assignments = await repo.list_assignments(technician_id)
    return success_response(data=[_to_response(a) for a in assignments])


@router.post("", status_code=201)
async def create_assignment(
    payload: AssignmentCreate,
    user: User = Depends(get_privileged_user),
    repo: SqlAssignmentRepository = Depends(get_assignment_repository),
):
    async with async_session() as db:
        if await db.get(Site, payload.site_id) is None:
            raise NotFoundError("Site não encontrado")
        technician = await db.get(User, payload.technician_id)
        if technician is None or technician.role != Role.TECHNICIAN.value:
            raise NotFoundError("Técnico não encontrado")

    assignment = await repo.create(payload.site_id, payload.technician_id, user.id, payload.deadline)
    return success_response(data=_to_response(assignment))


@router.post("/{assignment_id}/start")
async def start_assignment(
    assignment_id: str,
    user: User = Depends(get_current_user),
    repo: SqlAssignmentRepository = Depends(get_assignment_repository),
):
    async with async_session() as db:
        assignment = await db.get(SiteAssignment, assignment_id)
    if assignment is None:
        raise NotFoundError("Atribuição não encontrada")
    if assignment.technician_id != user.id and not is_privileged(user):
        raise AuthorizationError("Atribuição pertence a outro técnico", status_code=403)

    assignment = await repo.start(assignment_id)
    return success_response(data=_to_response(assignment))
