from pydantic import BaseModel


class AssignmentCreate(BaseModel):
    site_id: str
    technician_id: str
    deadline: str


class AssignmentResponse(BaseModel):
    id: str
    site_id: str
    technician_id: str
    assigned_by: str
    deadline: str
    status: str
    completed_at: str | None = None
    report_id: str | None = None
    created_at: str
    updated_at: str
    overdue: bool = False

    model_config = {"from_attributes": True}
