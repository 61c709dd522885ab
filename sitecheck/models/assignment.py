from sqlalchemy import Column, String, ForeignKey

from sitecheck.database import Base


class SiteAssignment(Base):
    __tablename__ = "site_assignments"

    id = Column(String, primary_key=True)
    site_id = Column(String, ForeignKey("sites.id"), nullable=False)
    technician_id = Column(String, ForeignKey("users.id"), nullable=False)
    assigned_by = Column(String, ForeignKey("users.id"), nullable=False)
    deadline = Column(String, nullable=False)
    status = Column(String, nullable=False, default="pending")
    completed_at = Column(String, nullable=True)
    report_id = Column(String, nullable=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)
