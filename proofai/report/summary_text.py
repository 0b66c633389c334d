from __future__ import annotations

from datetime import datetime

from proofai.report.report_layout import (
    FALLBACK_EXPLANATION,
    FALLBACK_LOCATION,
    FALLBACK_SUMMARY,
    LayoutConfig,
    format_timestamp,
    resolve_case_id,
)
from proofai.types import ReportInput, utcnow


def _bullets(title: str, items: list[str]) -> list[str]:
    if not items:
        return []
    return [f'{title}:', *(f'  • {item}' for item in items), '']


def format_summary(
    report: ReportInput,
    *,
    now: datetime | None = None,
    config: LayoutConfig | None = None,
) -> str:
    """Plain-text rendition of a report, for previews and database rows."""
    cfg = config or LayoutConfig()
    now = now or utcnow()
    options = report.options
    relevance = report.report_relevance

    case_id = resolve_case_id(report, now)
    lines = [
        'PROOF AI INCIDENT REPORT',
        f'Case ID: {case_id}',
        f'Report Date: {format_timestamp(now)}',
        f'Location: {(report.context.location or "").strip() or FALLBACK_LOCATION}',
        f'Reviewed By: {(options.reviewed_by or "").strip() or cfg.default_reviewer}',
        '',
        'Summary:',
        f'  {(report.summary or "").strip() or FALLBACK_SUMMARY}',
        '',
    ]
    lines.extend(_bullets('Participants', report.participants))
    lines.extend(_bullets('Key Events', report.key_events))
    lines.extend(_bullets('Notable Quotes', report.notable_quotes))

    tags = [name.upper() for name, flag in (('legal', relevance.legal), ('hr', relevance.hr), ('safety', relevance.safety)) if flag]
    lines.append(f'Report Relevance: {", ".join(tags) or "None"}')
    lines.append(f'Explanation: {(relevance.explanation or "").strip() or FALLBACK_EXPLANATION}')

    if options.confidential:
        lines.extend(['', cfg.confidential_notice])
    return '\n'.join(lines).strip()
