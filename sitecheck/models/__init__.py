from sitecheck.models.user import User, AuthToken
from sitecheck.models.site import Site
from sitecheck.models.assignment import SiteAssignment
from sitecheck.models.report import Report
from sitecheck.models.draft import ChecklistDraft

__all__ = ["User", "AuthToken", "Site", "SiteAssignment", "Report", "ChecklistDraft"]
