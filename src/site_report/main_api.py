"""HTTP API for the site report pipeline.

Usage:
    uvicorn site_report.main_api:app --host 0.0.0.0 --port 3000
    python -m site_report.main_api
"""

import json
import os
import uuid
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import Body, Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel
from contextlib import asynccontextmanager

from .config import get_settings
from .errors import AssemblyError, CollaboratorError, NotFoundError, SiteReportError, ValidationError
from .llm.narrative import NarrativeGenerator
from .log import setup_logging, get_logger
from .pipeline.intake import validate_job
from .pipeline.run import ReportPipeline
from .schemas.evidence import MAX_EVIDENCE, MIN_EVIDENCE, AnnotationKind, Report
from .services.captioning import VisionCaptioner
from .services.mail import SmtpMailer
from .services.transcription import WhisperTranscriber
from .store.repo import build_store

settings = get_settings()
setup_logging()
logger = get_logger("api")

@lru_cache()
def get_pipeline() -> ReportPipeline:
    return ReportPipeline(
        store=build_store(),
        narrator=NarrativeGenerator(),
        transcriber=WhisperTranscriber(),
        captioner=VisionCaptioner() if settings.OPENAI_API_KEY else None,
        mailer=SmtpMailer(),
    )

@asynccontextmanager
async def lifespan(app: FastAPI):
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    os.makedirs(settings.OUTPUT_DIR, exist_ok=True)
    yield

app = FastAPI(title="Site Report Backend", lifespan=lifespan)

_STATUS_CODES = {
    ValidationError: 400,
    NotFoundError: 404,
    CollaboratorError: 502,
    AssemblyError: 500,
}

@app.exception_handler(SiteReportError)
async def site_report_error_handler(request: Request, exc: SiteReportError):
    status = _STATUS_CODES.get(type(exc), 500)
    if status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=status, content={"error": exc.message, **exc.to_dict()})

class AnalyzeRequest(BaseModel):
    force: bool = False

class EmailRequest(BaseModel):
    email: str

def _write_file(dest: str, content: bytes):
    with open(dest, "wb") as out:
        out.write(content)

async def _save_upload(upload: UploadFile) -> str:
    ext = os.path.splitext(upload.filename or "")[1].lower()
    dest = os.path.join(settings.UPLOAD_DIR, f"{uuid.uuid4().hex}{ext}")
    content = await upload.read()
    await run_in_threadpool(_write_file, dest, content)
    return dest

def _discard(paths: List[str]):
    for path in paths:
        try:
            os.remove(path)
        except OSError as e:
            logger.warning(f"Could not remove rejected upload {path}: {e}")

def _parse_descriptions(raw: str) -> List[Dict[str, Any]]:
    try:
        parsed = json.loads(raw or "[]")
    except json.JSONDecodeError as e:
        raise ValidationError("photo_descriptions must be a JSON array") from e
    if not isinstance(parsed, list) or not all(isinstance(d, dict) for d in parsed):
        raise ValidationError("photo_descriptions must be a JSON array of objects")
    return parsed

def _check_upload_shape(descriptions: List[Dict[str, Any]], photo_count: int, audio_count: int):
    """Rejects malformed requests before any file is written."""
    if len(descriptions) != photo_count:
        raise ValidationError(
            "photo_descriptions must have one entry per uploaded photo",
            details={"photos": photo_count, "descriptions": len(descriptions)},
        )
    if photo_count < MIN_EVIDENCE or photo_count > MAX_EVIDENCE:
        raise ValidationError(
            f"A report needs between {MIN_EVIDENCE} and {MAX_EVIDENCE} photos, got {photo_count}",
            details={"count": photo_count},
        )
    for i, desc in enumerate(descriptions):
        if desc.get("type", AnnotationKind.TEXT.value) != AnnotationKind.VOICE.value:
            continue
        audio_index = desc.get("audio_index")
        if not isinstance(audio_index, int) or not 0 <= audio_index < audio_count:
            raise ValidationError(
                f"Evidence item {i} is a voice note but has no audio file",
                details={"index": i, "audio_index": audio_index},
            )

@app.get("/api/health")
def health():
    return {"message": "Server is working!"}

@app.post("/api/reports", status_code=201, response_model=Report)
async def create_report(
    job_name: str = Form(""),
    client_name: str = Form(""),
    address: str = Form(""),
    date: Optional[str] = Form(None),
    photo_descriptions: str = Form("[]"),
    photos: List[UploadFile] = File([]),
    audio: List[UploadFile] = File([]),
    pipeline: ReportPipeline = Depends(get_pipeline),
):
    """
    Multipart form. `photo_descriptions` is a JSON array with one entry per
    photo: {"type": "text", "description": "..."} or
    {"type": "voice", "audio_index": <index into `audio`>}.
    """
    job = validate_job({"job_name": job_name, "client_name": client_name, "address": address, "date": date or None})
    descriptions = _parse_descriptions(photo_descriptions)
    _check_upload_shape(descriptions, len(photos), len(audio))

    image_paths = [await _save_upload(p) for p in photos]
    audio_paths = [await _save_upload(a) for a in audio]

    captures = []
    for i, desc in enumerate(descriptions):
        kind = desc.get("type", AnnotationKind.TEXT.value)
        audio_path = None
        if kind == AnnotationKind.VOICE.value:
            audio_path = audio_paths[desc["audio_index"]]
        captures.append({
            "image_path": image_paths[i],
            "annotation_kind": kind,
            "text": desc.get("description"),
            "audio_path": audio_path,
        })

    try:
        # Transcription and captioning are blocking calls
        return await run_in_threadpool(pipeline.create_report, job, captures)
    except ValidationError:
        _discard(image_paths + audio_paths)
        raise

@app.get("/api/reports", response_model=List[Report])
def list_reports(pipeline: ReportPipeline = Depends(get_pipeline)):
    return pipeline.list_reports()

@app.get("/api/reports/{report_id}", response_model=Report)
def get_report(report_id: str, pipeline: ReportPipeline = Depends(get_pipeline)):
    return pipeline.get_report(report_id)

@app.patch("/api/reports/{report_id}", response_model=Report)
def patch_report(report_id: str, changes: Dict[str, Any] = Body(...), pipeline: ReportPipeline = Depends(get_pipeline)):
    return pipeline.patch(report_id, changes)

@app.post("/api/reports/{report_id}/analyze")
def analyze_report(report_id: str, request: Optional[AnalyzeRequest] = None, pipeline: ReportPipeline = Depends(get_pipeline)):
    force = request.force if request else False
    report = pipeline.analyze(report_id, force=force)
    return {"narrative_text": report.narrative_text, "stage": report.stage}

@app.get("/api/reports/{report_id}/pdf")
def report_pdf(report_id: str, pipeline: ReportPipeline = Depends(get_pipeline)):
    document = pipeline.assemble(report_id)
    return FileResponse(
        document.output,
        media_type="application/pdf",
        filename=f"report-{report_id}.pdf",
    )

@app.post("/api/reports/{report_id}/email")
def email_report(report_id: str, request: EmailRequest, pipeline: ReportPipeline = Depends(get_pipeline)):
    pipeline.email_report(report_id, request.email)
    return {"message": "Email sent successfully"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=3000)
