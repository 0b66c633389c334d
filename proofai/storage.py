from __future__ import annotations

import json
import re
from datetime import datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

from .config import get_settings
from .types import ReportInput


_UNSAFE_FILENAME_CHARS = re.compile(r'[^A-Za-z0-9._-]+')


def reports_root() -> Path:
    root = get_settings().data_dir / 'reports'
    root.mkdir(parents=True, exist_ok=True)
    return root


def _safe_case_id(case_id: str) -> str:
    token = _UNSAFE_FILENAME_CHARS.sub('-', str(case_id or '').strip()).strip('.-')
    return token or 'report'


def new_report_stem(case_id: str, generated_at: datetime) -> str:
    """File stem unique per stored report: ``<case>_<timestamp>_<short id>``."""
    return f'{_safe_case_id(case_id)}_{generated_at:%Y%m%dT%H%M%S}_{uuid4().hex[:8]}'


def report_pdf_path(stem: str) -> Path:
    return reports_root() / f'{stem}_report.pdf'


def report_metadata_path(stem: str) -> Path:
    return reports_root() / f'{stem}_report.json'


def write_bytes_atomic(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + '.tmp')
    tmp.write_bytes(content)
    tmp.replace(path)


def write_json_atomic(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + '.tmp')
    tmp.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding='utf-8')
    tmp.replace(path)


def read_json(path: Path) -> dict[str, Any]:
    return json.loads(path.read_text(encoding='utf-8'))


def save_report_pdf(
    case_id: str,
    pdf_bytes: bytes,
    report: ReportInput,
    *,
    page_count: int,
    generated_at: datetime,
) -> tuple[Path, Path]:
    """Persist a rendered report and its JSON sidecar under ``<data_dir>/reports``."""
    if not pdf_bytes:
        raise ValueError('refusing to store an empty PDF')

    stem = new_report_stem(case_id, generated_at)
    pdf_path = report_pdf_path(stem)
    meta_path = report_metadata_path(stem)
    write_bytes_atomic(pdf_path, pdf_bytes)

    relevance = report.report_relevance
    write_json_atomic(
        meta_path,
        {
            'case_id': case_id,
            'generated_at': generated_at.isoformat(),
            'page_count': page_count,
            'byte_size': len(pdf_bytes),
            'confidential': report.options.confidential,
            'reviewed_by': report.options.reviewed_by,
            'location': report.context.location,
            'video_url': report.video_url,
            'relevance': {
                'legal': relevance.legal,
                'hr': relevance.hr,
                'safety': relevance.safety,
            },
            'has_transcript': bool(report.transcript_text),
            'path': str(pdf_path),
        },
    )
    return pdf_path, meta_path
