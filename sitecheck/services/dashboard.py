"""Per-region counts across sites, assignments and persisted reports."""
from collections import Counter
from dataclasses import asdict, dataclass
from typing import Iterable

from sitecheck.services.assignments import AssignmentStatus

_PRECEDENCE = {
    AssignmentStatus.PENDING.value: 0,
    AssignmentStatus.IN_PROGRESS.value: 1,
    AssignmentStatus.DONE.value: 2,
}


@dataclass
class RegionSummary:
    uf: str
    total_sites: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    unassigned: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


def report_region(site_code: str) -> str:
    return (site_code or "")[:2].upper()


def aggregate_regions(sites: Iterable, assignments: Iterable, reports: Iterable) -> list[RegionSummary]:
    """``completed`` comes from reports, since a report can exist without an assignment.

    Each site counts once toward pending or in_progress, using its most
    advanced assignment (done > in_progress > pending).
    """
    top_status: dict[str, str] = {}
    for a in assignments:
        current = top_status.get(a.site_id)
        if current is None or _PRECEDENCE[a.status] > _PRECEDENCE[current]:
            top_status[a.site_id] = a.status

    summaries: dict[str, RegionSummary] = {}

    def region(uf: str) -> RegionSummary:
        return summaries.setdefault(uf, RegionSummary(uf=uf))

    for site in sites:
        summary = region(site.uf)
        summary.total_sites += 1
        status = top_status.get(site.id)
        if status is None:
            summary.unassigned += 1
        elif status == AssignmentStatus.IN_PROGRESS.value:
            summary.in_progress += 1
        elif status == AssignmentStatus.PENDING.value:
            summary.pending += 1

    for uf, count in Counter(report_region(r.site_code) for r in reports).items():
        region(uf).completed += count

    return sorted(summaries.values(), key=lambda s: s.uf)
