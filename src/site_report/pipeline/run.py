"""Report pipeline orchestrator.

Sequences creation -> analysis -> (edit) -> assembly for one report at a time.
Each step reads the current report from the store and writes back a new copy
only after its external calls succeeded, so a failed or abandoned call leaves
the last consistent report in place. Nothing here retries; failures go back
to the caller.

Concurrent analyze/edit calls on the same report are last-writer-wins.
"""

import os
from typing import Any, List, Mapping, Optional, Sequence

from ..config import get_settings
from ..errors import CollaboratorError, NotFoundError, ValidationError
from ..llm.narrative import Narrator
from ..log import get_logger
from ..mlops.tracking import ReportTracker
from ..parsing.narrative import parse_narrative
from ..rendering.pdf import AssembledDocument, Sink, assemble_report
from ..schemas.evidence import PipelineStage, Report
from ..schemas.narrative import ParsedNarrative
from ..services.captioning import Captioner
from ..services.mail import Mailer
from ..services.transcription import Transcriber
from ..store.repo import ReportStore
from .intake import CaptureInput, JobInput, create_report, validate_job

logger = get_logger("pipeline")


class ReportPipeline:
    def __init__(
        self,
        store: ReportStore,
        narrator: Narrator,
        transcriber: Optional[Transcriber] = None,
        captioner: Optional[Captioner] = None,
        mailer: Optional[Mailer] = None,
        tracker: Optional[ReportTracker] = None,
        output_dir: Optional[str] = None,
    ):
        self.store = store
        self.narrator = narrator
        self.transcriber = transcriber
        self.captioner = captioner
        self.mailer = mailer
        self.tracker = tracker or ReportTracker()
        self.output_dir = output_dir or get_settings().OUTPUT_DIR

    # --- store access -------------------------------------------------

    def get_report(self, report_id: str) -> Report:
        report = self.store.get(report_id)
        if report is None:
            raise NotFoundError.report(report_id)
        return report

    def list_reports(self) -> List[Report]:
        return self.store.list()

    # --- Created ------------------------------------------------------

    def create_report(self, job: JobInput, captures: Sequence[CaptureInput]) -> Report:
        report = create_report(job, captures, transcriber=self.transcriber, captioner=self.captioner)
        self.store.put(report)
        return report

    def update_job(self, report_id: str, **fields: Any) -> Report:
        """Explicit patch of job metadata; the merged result is re-validated."""
        report = self.get_report(report_id)
        unknown = set(fields) - set(type(report.job).model_fields)
        if unknown:
            raise ValidationError(f"Unknown job fields: {sorted(unknown)}", details={"fields": sorted(unknown)})
        merged = {**report.job.model_dump(), **fields}
        updated = report.revise(job=validate_job(merged))
        self.store.put(updated)
        return updated

    # --- Created -> Analyzed ------------------------------------------

    def analyze(self, report_id: str, force: bool = False) -> Report:
        """
        Generate the narrative for a report.

        Without `force`, a report that already has narrative text is returned
        unchanged. On failure the stored report is left as it was.

        Raises:
            NotFoundError: unknown report id
            CollaboratorError: narrative generation failed
        """
        report = self.get_report(report_id)
        if report.narrative_text and not force:
            logger.info(f"Report {report_id} already analyzed; pass force=True to regenerate")
            return report

        with self.tracker.start_run("analyze", report_id, tags={"photos": len(report.evidence), "force": force}) as span:
            try:
                text = self.narrator.generate(report.ordered_descriptions())
            except Exception as e:
                logger.error(f"Analysis failed for report {report_id}: {e}")
                raise CollaboratorError.wrap("narrative", "generate", e) from e
            self.tracker.set_tags(span, {"narrative_chars": len(text)})

        # Re-read so a concurrent edit of other fields is not clobbered.
        current = self.store.get(report_id) or report
        updated = current.revise(narrative_text=text, stage=PipelineStage.ANALYZED)
        self.store.put(updated)
        logger.info(f"Report {report_id} analyzed")
        return updated

    # --- Analyzed -> Edited -------------------------------------------

    def edit_narrative(self, report_id: str, text: Optional[str]) -> Report:
        """Replace the narrative verbatim; no check against the photo count."""
        report = self.get_report(report_id)
        updated = report.revise(narrative_text=text, stage=PipelineStage.EDITED)
        self.store.put(updated)
        return updated

    def patch(self, report_id: str, changes: Mapping[str, Any]) -> Report:
        """Apply an API-style partial update: narrative_text and/or job fields."""
        allowed = {"narrative_text", "job"}
        unknown = set(changes) - allowed
        if unknown:
            raise ValidationError(f"Fields cannot be patched: {sorted(unknown)}", details={"fields": sorted(unknown)})
        report = self.get_report(report_id)
        if "job" in changes:
            job_changes = changes["job"] or {}
            if not isinstance(job_changes, Mapping):
                raise ValidationError("'job' must be an object")
            report = self.update_job(report_id, **job_changes)
        if "narrative_text" in changes:
            report = self.edit_narrative(report_id, changes["narrative_text"])
        return report

    # --- -> Assembled -------------------------------------------------

    def parse(self, report_id: str) -> ParsedNarrative:
        return parse_narrative(self.get_report(report_id).narrative_text)

    def default_output_path(self, report_id: str) -> str:
        return os.path.join(self.output_dir, f"report-{report_id}.pdf")

    def assemble(self, report_id: str, sink: Optional[Sink] = None) -> AssembledDocument:
        """
        Lay out and draw the report PDF from its current state. Runs every time
        it is called.

        Raises:
            NotFoundError: unknown report id
            AssemblyError: the output could not be written
        """
        report = self.get_report(report_id)
        if sink is None:
            os.makedirs(self.output_dir, exist_ok=True)
            sink = self.default_output_path(report_id)

        with self.tracker.start_run("assemble", report_id) as span:
            parsed = parse_narrative(report.narrative_text)
            document = assemble_report(report, parsed, sink)
            self.tracker.set_tags(span, {
                "pages": document.page_count,
                "sections": len(parsed.sections),
                "photos": len(report.evidence),
            })

        current = self.store.get(report_id) or report
        self.store.put(current.revise(stage=PipelineStage.ASSEMBLED))
        return document

    def email_report(self, report_id: str, address: str) -> AssembledDocument:
        """
        Assemble the report to its default path and mail it.

        Raises:
            ValidationError: blank or malformed address, or no mailer configured
            CollaboratorError: the mail transport failed
        """
        address = (address or "").strip()
        if not address or "@" not in address:
            raise ValidationError("A valid email address is required", details={"email": address})
        if self.mailer is None:
            raise ValidationError("Email delivery is not configured")

        document = self.assemble(report_id)
        report = self.get_report(report_id)
        job_name = report.job.job_name
        try:
            self.mailer.send(
                address,
                document.output,
                subject=f"Property Report - {job_name}",
                body=f"Please find attached the property report for {job_name}.",
            )
        except Exception as e:
            raise CollaboratorError.wrap("mail", "send", e) from e
        return document
