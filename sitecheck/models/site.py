from sqlalchemy import Column, String, ForeignKey

from sitecheck.database import Base


class Site(Base):
    __tablename__ = "sites"

    id = Column(String, primary_key=True)
    site_code = Column(String, nullable=False, unique=True)
    uf = Column(String, nullable=False)
    tipo = Column(String, nullable=False)
    created_at = Column(String, nullable=False)
    created_by = Column(String, ForeignKey("users.id"), nullable=True)
