"""Report creation: validate capture input and normalize it into EvidenceItems.

Shape problems raise ValidationError before any external service is called.
Transcription and captioning failures are recorded on the item and never abort
creation; the item keeps an empty description (voice) or the caption sentinel
(text) and can be re-analysed later.
"""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence, Union

from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError
from ..log import get_logger
from ..schemas.evidence import (
    MAX_EVIDENCE,
    MIN_EVIDENCE,
    AnnotationKind,
    EvidenceCapture,
    EvidenceItem,
    JobMetadata,
    Report,
)
from ..services.captioning import NO_DESCRIPTION, Captioner, guess_image_type
from ..services.transcription import Transcriber

logger = get_logger("pipeline.intake")

JobInput = Union[JobMetadata, Mapping[str, Any]]
CaptureInput = Union[EvidenceCapture, Mapping[str, Any]]


def _pydantic_details(error: PydanticValidationError) -> dict:
    return {"errors": [f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in error.errors()]}


def validate_job(job: JobInput) -> JobMetadata:
    if isinstance(job, JobMetadata):
        return job
    values = {k: v for k, v in dict(job).items() if v is not None}
    try:
        return JobMetadata(**values)
    except PydanticValidationError as e:
        raise ValidationError("Missing required job fields", details=_pydantic_details(e)) from e


def validate_capture(index: int, capture: CaptureInput) -> EvidenceCapture:
    try:
        cap = capture if isinstance(capture, EvidenceCapture) else EvidenceCapture.model_validate(capture)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid evidence item at index {index}", details=_pydantic_details(e)) from e

    if not cap.image_path or not cap.image_path.strip():
        raise ValidationError(f"Evidence item {index} has no image", details={"index": index})

    if cap.annotation_kind is AnnotationKind.VOICE:
        if not cap.audio_path:
            raise ValidationError(
                f"Evidence item {index} is a voice note but has no audio file",
                details={"index": index},
            )
        if not Path(cap.audio_path).is_file():
            raise ValidationError(
                f"Audio file for evidence item {index} not found: {cap.audio_path}",
                details={"index": index, "audio_path": cap.audio_path},
            )
    elif cap.audio_path:
        raise ValidationError(
            f"Evidence item {index} is a text note but carries an audio file",
            details={"index": index},
        )
    return cap


def _ingest_voice(cap: EvidenceCapture, transcriber: Optional[Transcriber]) -> EvidenceItem:
    transcript = ""
    error = None
    if transcriber is None:
        error = "no transcription service configured"
    else:
        try:
            transcript = transcriber.transcribe(Path(cap.audio_path).read_bytes())
        except Exception as e:
            error = str(e)
    if error:
        logger.warning(f"Transcription failed for {cap.audio_path}: {error}")

    return EvidenceItem(
        image_path=cap.image_path,
        annotation_kind=AnnotationKind.VOICE,
        description=transcript,
        raw_transcript=transcript,
        ingest_error=error,
    )


def _ingest_text(cap: EvidenceCapture, captioner: Optional[Captioner]) -> EvidenceItem:
    description = (cap.text or "").strip()
    error = None
    if not description and captioner is not None:
        try:
            description = captioner.describe(Path(cap.image_path).read_bytes(), guess_image_type(cap.image_path))
        except Exception as e:
            logger.warning(f"Captioning failed for {cap.image_path}: {e}")
            description, error = NO_DESCRIPTION, str(e)

    return EvidenceItem(
        image_path=cap.image_path,
        annotation_kind=AnnotationKind.TEXT,
        description=description,
        ingest_error=error,
    )


def create_report(
    job: JobInput,
    captures: Sequence[CaptureInput],
    transcriber: Optional[Transcriber] = None,
    captioner: Optional[Captioner] = None,
    report_id: Optional[str] = None,
) -> Report:
    """
    Validate capture input and build a new draft Report.

    Raises:
        ValidationError: empty job fields, evidence count outside [1, 20],
            or an item whose annotation kind does not match its files
    """
    job_meta = validate_job(job)

    count = len(captures)
    if count < MIN_EVIDENCE or count > MAX_EVIDENCE:
        raise ValidationError(
            f"A report needs between {MIN_EVIDENCE} and {MAX_EVIDENCE} photos, got {count}",
            details={"count": count},
        )

    validated = [validate_capture(i, c) for i, c in enumerate(captures)]

    evidence = []
    for cap in validated:
        if cap.annotation_kind is AnnotationKind.VOICE:
            evidence.append(_ingest_voice(cap, transcriber))
        else:
            evidence.append(_ingest_text(cap, captioner))

    failures = sum(1 for item in evidence if item.ingest_error)
    report = Report(id=report_id or uuid.uuid4().hex, job=job_meta, evidence=evidence)
    logger.info(f"Created report {report.id} with {count} photos ({failures} annotation failures)")
    return report
