from sqlalchemy import Column, String, Integer, Text

from sitecheck.database import Base


class Report(Base):
    __tablename__ = "reports"

    id = Column(String, primary_key=True)
    created_at = Column(String, nullable=False)
    created_date = Column(String, nullable=False)
    created_time = Column(String, nullable=False)
    technician_name = Column(String, nullable=True)
    site_code = Column(String, nullable=False)
    state_uf = Column(String, nullable=True)
    total_cabinets = Column(Integer, nullable=False, default=1)
    panoramic_photo_url = Column(String, nullable=True)
    row = Column(Text, nullable=False)
    payload = Column(Text, nullable=False)
    pdf_file_path = Column(String, nullable=True)
    excel_file_path = Column(String, nullable=True)
