from pydantic import BaseModel


class ReportResponse(BaseModel):
    id: str
    created_at: str
    created_date: str
    created_time: str
    technician_name: str | None = None
    site_code: str
    state_uf: str | None = None
    total_cabinets: int
    panoramic_photo_url: str | None = None
    pdf_file_path: str | None = None
    excel_file_path: str | None = None

    model_config = {"from_attributes": True}


class ReportDetailResponse(ReportResponse):
    record: dict
