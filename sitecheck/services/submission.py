"""Final submission of a checklist.

Stages run strictly in order: pre-flight, timestamp, photo resolution,
documents, persistence, assignment link. Only pre-flight and persistence
can fail the submission; everything else degrades to a warning.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from sitecheck.schemas.checklist import photo_category
from sitecheck.services.assignments import AssignmentStatus, AssignmentUpdater
from sitecheck.services.documents import DocumentService
from sitecheck.services.photo_pipeline import PhotoPipeline, PhotoResult, PhotoStatus, upload_site_code
from sitecheck.services.record_store import ChecklistStore
from sitecheck.services.reports import ReportRepository
from sitecheck.services.validation import SUBMIT_MIN_SCORE, FieldError, completion_score
from sitecheck.utils.exceptions import InvalidPathError

logger = logging.getLogger(__name__)


class SubmissionStage(str, Enum):
    PREFLIGHT = "preflight"
    TIMESTAMP = "timestamp"
    RESOLVE_PHOTOS = "resolve_photos"
    DOCUMENTS = "documents"
    PERSIST = "persist"
    LINK_ASSIGNMENT = "link_assignment"
    DONE = "done"


@dataclass
class SubmissionOutcome:
    success: bool
    stage: SubmissionStage
    error_kind: Optional[str] = None
    message: Optional[str] = None
    report_id: Optional[str] = None
    score: int = 0
    errors: list[FieldError] = field(default_factory=list)
    documents: dict[str, str] = field(default_factory=dict)
    photo_results: dict[str, PhotoResult] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "success": self.success,
            "stage": self.stage.value,
            "error_kind": self.error_kind,
            "report_id": self.report_id,
            "score": self.score,
            "errors": [e.__dict__ for e in self.errors],
            "documents": self.documents,
            "photos": {path: r.status.value for path, r in self.photo_results.items()},
            "warnings": self.warnings,
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SubmissionOrchestrator:
    def __init__(
        self,
        store: ChecklistStore,
        pipeline: PhotoPipeline,
        reports: ReportRepository,
        assignments: Optional[AssignmentUpdater],
        documents: DocumentService,
        clock: Callable[[], datetime] = _utcnow,
        reset_delay: float = 1.5,
    ):
        self.store = store
        self.pipeline = pipeline
        self.reports = reports
        self.assignments = assignments
        self.documents = documents
        self.clock = clock
        self.reset_delay = reset_delay

    def preflight(self) -> list[FieldError]:
        record = self.store.snapshot()
        errors = []
        score = completion_score(record)
        if score < SUBMIT_MIN_SCORE:
            errors.append(FieldError(
                "completion",
                f"Checklist {score}% completo. Mínimo de {SUBMIT_MIN_SCORE}% para enviar",
            ))
        if not record.technician.strip():
            errors.append(FieldError("technician", "Nome do técnico é obrigatório"))
        return errors

    async def _resolve_one(self, path: str, value: str, site_code: Optional[str]) -> PhotoResult:
        try:
            return await self.pipeline.resolve(value, site_code, photo_category(path))
        except Exception as e:
            # the slot keeps its local value and is retried on the next submission
            logger.exception("Photo %s could not be resolved", path)
            return PhotoResult(PhotoStatus.FAILED, value, str(e))

    def _current(self, path: str):
        try:
            return self.store.get(path)
        except InvalidPathError:
            return None

    async def resolve_photos(self) -> dict[str, PhotoResult]:
        record = self.store.snapshot()
        site_code = upload_site_code(record.site_code)
        pending = [(path, value) for path, value in record.photo_slots() if value]

        results = await asyncio.gather(
            *(self._resolve_one(path, value, site_code) for path, value in pending)
        )

        resolved: dict[str, PhotoResult] = {}
        for (path, sent), result in zip(pending, results):
            resolved[path] = result
            if result.value == sent:
                continue
            # a slot cleared or replaced meanwhile keeps its newer value
            if self._current(path) != sent:
                logger.info("Ignoring late result for %s", path)
                continue
            self.store.update(path, result.value)

        fallbacks = [p for p, r in resolved.items() if r.status is PhotoStatus.FALLBACK]
        if fallbacks:
            logger.warning("%d photos kept locally after upload failure: %s", len(fallbacks), ", ".join(fallbacks))
        return resolved

    async def submit(self, assignment_id: Optional[str] = None) -> SubmissionOutcome:
        errors = self.preflight()
        score = completion_score(self.store.snapshot())
        if errors:
            return SubmissionOutcome(
                success=False,
                stage=SubmissionStage.PREFLIGHT,
                error_kind="validation",
                message=errors[0].message,
                score=score,
                errors=errors,
            )

        outcome = SubmissionOutcome(success=False, stage=SubmissionStage.TIMESTAMP, score=score)
        now = self.clock()
        self.store.update("submitted_at", now.isoformat())

        outcome.stage = SubmissionStage.RESOLVE_PHOTOS
        outcome.photo_results = await self.resolve_photos()
        record = self.store.snapshot()
        outcome.warnings.extend(
            f"Foto {path} salva localmente" for path, r in outcome.photo_results.items()
            if r.status in (PhotoStatus.FALLBACK, PhotoStatus.FAILED)
        )

        # delivered before persistence; a failed save does not retract them
        outcome.stage = SubmissionStage.DOCUMENTS
        batch = await self.documents.generate(record, now)
        outcome.documents = batch.documents
        outcome.warnings.extend(batch.warnings)

        outcome.stage = SubmissionStage.PERSIST
        try:
            report_id = await self.reports.save(record, batch.filename("pdf"), batch.filename("xlsx"))
        except Exception as e:
            logger.warning("Submission of %s failed at persistence: %s", record.id, e)
            outcome.error_kind = "persistence"
            outcome.message = getattr(e, "message", None) or "Erro ao salvar relatório. Tente novamente."
            return outcome
        outcome.report_id = report_id

        if assignment_id and self.assignments is not None:
            outcome.stage = SubmissionStage.LINK_ASSIGNMENT
            try:
                await self.assignments.update_status(
                    assignment_id,
                    AssignmentStatus.DONE,
                    completed_at=now.isoformat(),
                    report_id=report_id,
                )
            except Exception as e:
                logger.warning("Report %s saved but assignment %s not updated: %s", report_id, assignment_id, e)
                outcome.warnings.append("Atribuição não atualizada")

        outcome.success = True
        outcome.stage = SubmissionStage.DONE
        outcome.message = "Checklist enviado com sucesso"
        logger.info("Checklist %s submitted as report %s", record.id, report_id)

        self.store.update("synchronized", True)
        if self.reset_delay:
            await asyncio.sleep(self.reset_delay)
        self.store.reset()
        return outcome
