import io
import json
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from site_report.main_api import app, get_pipeline
from site_report.pipeline.run import ReportPipeline
from site_report.store.repo import InMemoryReportStore

client = TestClient(app)

FORM = {"job_name": "Kitchen Remodel", "client_name": "Jane Smith", "address": "12 Elm St", "date": "2026-10-01"}


def _png() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (32, 32), color="blue").save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def pipeline(mock_narrator, tmp_path):
    """Pipeline with mocked collaborators, uploads and PDFs under tmp_path."""
    from site_report.config import get_settings

    settings = get_settings()
    original_upload_dir = settings.UPLOAD_DIR
    settings.UPLOAD_DIR = str(tmp_path)

    transcriber = MagicMock()
    transcriber.transcribe.return_value = "Loose handrail"
    pipe = ReportPipeline(
        store=InMemoryReportStore(),
        narrator=mock_narrator,
        transcriber=transcriber,
        mailer=MagicMock(),
        output_dir=str(tmp_path / "out"),
    )
    app.dependency_overrides[get_pipeline] = lambda: pipe
    yield pipe

    app.dependency_overrides.clear()
    settings.UPLOAD_DIR = original_upload_dir


def _create(descriptions, photos=None, audio=None, form=None):
    photos = photos if photos is not None else [_png() for _ in descriptions]
    files = [("photos", (f"p{i}.png", data, "image/png")) for i, data in enumerate(photos)]
    files += [("audio", (f"a{i}.wav", data, "audio/wav")) for i, data in enumerate(audio or [])]
    data = {**(form or FORM), "photo_descriptions": json.dumps(descriptions)}
    return client.post("/api/reports", data=data, files=files or None)


def test_health():
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"message": "Server is working!"}


def test_full_report_flow(pipeline):
    """
    WHY: The main path: create, analyze, edit, download.
    HOW: Create a two-photo report over multipart, analyze with the mocked narrator,
         patch the narrative, then fetch the PDF.
    EXPECTED: 201 / 200 responses, stages advance, PDF bytes returned.
    """
    response = _create([
        {"type": "text", "description": "cracked tile"},
        {"type": "text", "description": "leaking pipe"},
    ])
    assert response.status_code == 201
    report = response.json()
    assert report["stage"] == "created"
    assert [e["description"] for e in report["evidence"]] == ["cracked tile", "leaking pipe"]

    response = client.post(f"/api/reports/{report['id']}/analyze")
    assert response.status_code == 200
    assert response.json()["narrative_text"].startswith("Kitchen Issues")
    assert response.json()["stage"] == "analyzed"

    response = client.patch(f"/api/reports/{report['id']}", json={"narrative_text": "Edited\nPhoto 1: a"})
    assert response.status_code == 200
    assert response.json()["stage"] == "edited"

    response = client.get(f"/api/reports/{report['id']}/pdf")
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")

    listed = client.get("/api/reports").json()
    assert [r["id"] for r in listed] == [report["id"]]


def test_voice_note_is_transcribed(pipeline):
    response = _create([{"type": "voice", "audio_index": 0}], audio=[b"RIFF....WAVE"])

    assert response.status_code == 201
    item = response.json()["evidence"][0]
    assert item["annotation_kind"] == "voice"
    assert item["description"] == "Loose handrail"


def test_voice_note_without_audio_is_rejected(pipeline):
    response = _create([{"type": "voice"}])
    assert response.status_code == 400
    assert response.json()["error_type"] == "VALIDATION_ERROR"


def test_no_photos_is_rejected(pipeline):
    response = _create([])
    assert response.status_code == 400


def test_missing_job_field_is_rejected(pipeline):
    response = _create([{"type": "text", "description": "x"}], form={**FORM, "client_name": ""})
    assert response.status_code == 400
    assert pipeline.list_reports() == []


def test_description_count_must_match_photos(pipeline):
    response = _create([{"type": "text", "description": "x"}], photos=[_png(), _png()])
    assert response.status_code == 400


def test_unknown_report_is_404(pipeline):
    response = client.get("/api/reports/does-not-exist")
    assert response.status_code == 404
    assert response.json()["error_type"] == "NOT_FOUND"


def test_analyze_failure_is_502_and_report_unchanged(pipeline, mock_narrator):
    report_id = _create([{"type": "text", "description": "x"}]).json()["id"]
    mock_narrator.generate.side_effect = TimeoutError("LLM timed out")

    response = client.post(f"/api/reports/{report_id}/analyze")

    assert response.status_code == 502
    assert response.json()["error_type"] == "COLLABORATOR_ERROR"
    assert client.get(f"/api/reports/{report_id}").json()["narrative_text"] is None


def test_analyze_force_regenerates(pipeline, mock_narrator):
    report_id = _create([{"type": "text", "description": "x"}]).json()["id"]
    client.post(f"/api/reports/{report_id}/analyze")
    mock_narrator.generate.return_value = "Second\nPhoto 1: y"

    kept = client.post(f"/api/reports/{report_id}/analyze").json()
    forced = client.post(f"/api/reports/{report_id}/analyze", json={"force": True}).json()

    assert kept["narrative_text"].startswith("Kitchen Issues")
    assert forced["narrative_text"] == "Second\nPhoto 1: y"


def test_email_report(pipeline):
    report_id = _create([{"type": "text", "description": "x"}]).json()["id"]

    response = client.post(f"/api/reports/{report_id}/email", json={"email": "client@example.com"})

    assert response.status_code == 200
    assert response.json() == {"message": "Email sent successfully"}
    pipeline.mailer.send.assert_called_once()
    assert pipeline.mailer.send.call_args.kwargs["subject"] == "Property Report - Kitchen Remodel"


def test_email_requires_address(pipeline):
    report_id = _create([{"type": "text", "description": "x"}]).json()["id"]
    response = client.post(f"/api/reports/{report_id}/email", json={"email": ""})
    assert response.status_code == 400


def _leftover_uploads(tmp_path):
    return [p for p in tmp_path.iterdir() if p.is_file()]


@pytest.mark.parametrize("descriptions, photo_count, audio, form", [
    ([], 0, None, None),
    ([{"type": "voice"}], 1, None, None),
    ([{"type": "voice", "audio_index": 3}], 1, [b"RIFF"], None),
    ([{"type": "text", "description": "x"}], 1, None, {**FORM, "job_name": " "}),
    ([{"type": "text", "description": "x"}] * 21, 21, None, None),
])
def test_rejected_request_writes_no_files(pipeline, tmp_path, descriptions, photo_count, audio, form):
    """
    WHY: A rejected upload must not leave files behind in UPLOAD_DIR.
    HOW: Post requests that fail job, count or voice-note checks.
    EXPECTED: 400 and an empty upload directory.
    """
    response = _create(descriptions, photos=[_png() for _ in range(photo_count)], audio=audio, form=form)

    assert response.status_code == 400
    assert _leftover_uploads(tmp_path) == []


def test_uploads_removed_when_intake_rejects(pipeline, tmp_path):
    # Passes the request checks, fails the evidence model (unknown annotation type)
    response = _create([{"type": "video", "description": "x"}])

    assert response.status_code == 400
    assert _leftover_uploads(tmp_path) == []


def test_uploaded_photo_is_saved_intact(pipeline, tmp_path):
    png = _png()
    response = _create([{"type": "text", "description": "x"}], photos=[png])

    image_path = response.json()["evidence"][0]["image_path"]
    assert image_path.startswith(str(tmp_path))
    assert image_path.endswith(".png")
    with open(image_path, "rb") as f:
        assert f.read() == png
