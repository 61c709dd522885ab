from sqlalchemy import Column, String, Integer, Text

from sitecheck.database import Base


class ChecklistDraft(Base):
    __tablename__ = "checklist_drafts"

    id = Column(String, primary_key=True)
    site_code = Column(String, nullable=True)
    uf = Column(String, nullable=True)
    payload = Column(Text, nullable=False)
    synchronized = Column(Integer, nullable=False, default=0)
    updated_at = Column(String, nullable=False)
