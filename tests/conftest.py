import pytest
import os
from pathlib import Path
from typing import List, Optional
from unittest.mock import MagicMock
from dotenv import load_dotenv
from PIL import Image

from site_report.schemas.evidence import AnnotationKind, EvidenceItem, JobMetadata, Report

@pytest.fixture(scope="session", autouse=True)
def _load_env():
    # Load .env once per session to avoid side-effects on import time
    load_dotenv()

def _truthy(v: str | None) -> bool:
    return v is not None and v.strip().lower() not in ("", "0", "false", "no")

@pytest.fixture(scope="session")
def allow_integration(_load_env) -> bool:
    # Depends on _load_env to ensure .env is loaded first
    return _truthy(os.getenv("RUN_INTEGRATION_TESTS"))

@pytest.fixture(scope="session")
def openai_api_key(_load_env) -> str | None:
    key = os.getenv("OPENAI_API_KEY")
    if not key or key == "sk-...":
        return None
    return key

@pytest.fixture
def make_image(tmp_path):
    """Writes a small real PNG and returns its path."""
    counter = {"n": 0}

    def _make(name: Optional[str] = None, color: str = "red") -> str:
        counter["n"] += 1
        path = tmp_path / (name or f"photo_{counter['n']}.png")
        Image.new("RGB", (64, 48), color=color).save(path)
        return str(path)

    return _make

@pytest.fixture
def job():
    return JobMetadata(job_name="Kitchen Remodel", client_name="Jane Smith", address="12 Elm St", date="2026-10-01")

@pytest.fixture
def make_report(job, make_image):
    """
    Builds a Report directly (no intake) with one real image per description.
    Pass image_paths to control the files (e.g. missing ones).
    """
    def _make(descriptions: List[str], narrative_text: Optional[str] = None,
              image_paths: Optional[List[str]] = None, report_id: str = "r-test") -> Report:
        paths = image_paths or [make_image() for _ in descriptions]
        evidence = [
            EvidenceItem(image_path=p, annotation_kind=AnnotationKind.TEXT, description=d)
            for p, d in zip(paths, descriptions)
        ]
        return Report(id=report_id, job=job, evidence=evidence, narrative_text=narrative_text)

    return _make

@pytest.fixture
def kitchen_narrative() -> str:
    return (
        "Kitchen Issues\n"
        "Photo 1: Problem Description: Cracked tile. Priority Level: Low.\n"
        "Photo 2: Problem Description: Leaking pipe. Priority Level: High. "
        "Safety Concerns: Water damage risk."
    )

@pytest.fixture
def mock_narrator(kitchen_narrative):
    narrator = MagicMock()
    narrator.generate.return_value = kitchen_narrative
    return narrator

@pytest.fixture
def test_db(tmp_path):
    """
    Temporary SQLite database for store tests.
    Patches DB_PATH on the cached settings and restores it afterwards.
    """
    from site_report.config import get_settings
    from site_report.store.db import init_db

    settings = get_settings()
    original_db_path = settings.DB_PATH
    settings.DB_PATH = str(tmp_path / "test_reports.db")
    init_db()

    yield settings

    settings.DB_PATH = original_db_path
