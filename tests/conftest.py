from __future__ import annotations

import io
from datetime import datetime, timezone

import pytest
from pypdf import PdfReader

from proofai.config import get_settings


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    monkeypatch.setenv('DATA_DIR', str(tmp_path / 'data'))
    for name in ('OPENAI_API_KEY', 'API_KEY', 'LLM_API_KEY', 'GEOCODE_API_KEY', 'GOOGLE_MAPS_API_KEY'):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def now():
    return datetime(2024, 3, 15, 14, 30, 5, tzinfo=timezone.utc)


@pytest.fixture
def example_payload():
    return {
        'summary': 'Incident occurred at 3pm.',
        'participants': ['A', 'B'],
        'keyEvents': [],
        'context': {'time': '3pm', 'location': '', 'environmentalFactors': ''},
        'notableQuotes': [],
        'reportRelevance': {'legal': False, 'hr': True, 'safety': False, 'explanation': 'HR matter'},
        'options': {'caseId': 'X-1', 'confidential': True},
    }


def pdf_text(pdf_bytes: bytes) -> str:
    reader = PdfReader(io.BytesIO(pdf_bytes))
    return '\n'.join(page.extract_text() or '' for page in reader.pages)


def pdf_page_count(pdf_bytes: bytes) -> int:
    return len(PdfReader(io.BytesIO(pdf_bytes)).pages)
