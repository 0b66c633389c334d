from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from proofai.report.report_layout import RenderFailure
from proofai.types import ReportContext, ReportInput, ReportOptions, ReportRelevance


_TRUTHY = {'yes', 'y', 'true', '1', 'on', 'relevant'}
_LOCATION_LINE = re.compile(r'^\W*location\s*:\s*(?P<value>.+)$', re.IGNORECASE)
_WITNESS_BANNER = re.compile(r'witness\s+statement', re.IGNORECASE)


def _first(payload: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return None


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _optional_text(value: Any) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        return None
    text = value.strip()
    return text or None


def _text_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(',') if part.strip()]
    if not isinstance(value, (list, tuple)):
        return []
    items: list[str] = []
    for item in value:
        text = _optional_text(item)
        if text:
            items.append(text)
    return items


def _flag(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return default


def _coerce_summary(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, Mapping):
        return _coerce_summary(_first(value, 'structuredSummaryText', 'structured_summary_text', 'summary', 'text'))
    if isinstance(value, bytes):
        try:
            value = value.decode('utf-8')
        except UnicodeDecodeError as exc:
            raise RenderFailure('Report summary is not valid UTF-8 text') from exc
    if isinstance(value, (list, tuple)):
        return _optional_text('\n'.join(item for item in _text_list(value)))
    if isinstance(value, bool):
        raise RenderFailure('Report summary must be text, got bool')
    if isinstance(value, (str, int, float)):
        return _optional_text(value)
    raise RenderFailure(f'Report summary must be text, got {type(value).__name__}')


def _location_from_summary(summary: str | None) -> str | None:
    if not summary:
        return None
    for line in summary.splitlines():
        match = _LOCATION_LINE.match(line.strip())
        if match:
            return _optional_text(match.group('value'))
    return None


def _unwrap(payload: Mapping[str, Any]) -> tuple[Mapping[str, Any], Mapping[str, Any]]:
    """Return the record body and the options carried alongside it."""
    options = _as_mapping(payload.get('options'))
    for key in ('data', 'structuredSummary', 'structured_summary'):
        inner = payload.get(key)
        if isinstance(inner, Mapping):
            merged_options = {**_as_mapping(inner.get('options')), **options}
            return inner, merged_options
    return payload, options


def _build_context(body: Mapping[str, Any], summary: str | None) -> ReportContext:
    raw = _as_mapping(_first(body, 'context'))
    location = _optional_text(
        _first(raw, 'location', 'geocodedAddress', 'geocoded_address', 'address')
        or _first(body, 'geocodedAddress', 'geocoded_address', 'location', 'address')
    )
    return ReportContext(
        time=_optional_text(_first(raw, 'time') or _first(body, 'time', 'reportDate', 'report_date', 'timestamp')),
        location=location or _location_from_summary(summary),
        environmental_factors=_optional_text(
            _first(raw, 'environmentalFactors', 'environmental_factors')
            or _first(body, 'environmentalFactors', 'environmental_factors')
        ),
    )


def _build_relevance(body: Mapping[str, Any]) -> ReportRelevance:
    raw = _as_mapping(_first(body, 'reportRelevance', 'report_relevance'))
    return ReportRelevance(
        legal=_flag(raw.get('legal')),
        hr=_flag(raw.get('hr')),
        safety=_flag(raw.get('safety')),
        explanation=_optional_text(raw.get('explanation')),
    )


def _option(sources: tuple[Mapping[str, Any], ...], *keys: str) -> Any:
    for source in sources:
        value = _first(source, *keys)
        if value is not None:
            return value
    return None


def _build_options(body: Mapping[str, Any], carried: Mapping[str, Any], explicit: Mapping[str, Any]) -> ReportOptions:
    # Explicit options win over options carried in the payload.
    sources = (explicit, carried)
    return ReportOptions(
        case_id=_optional_text(_option((*sources, body), 'caseId', 'case_id')),
        reviewed_by=_optional_text(_option(sources, 'reviewedBy', 'reviewed_by')),
        confidential=_flag(_option(sources, 'confidential')),
        watermark=_flag(_option(sources, 'watermark')),
        include_signature=_flag(_option(sources, 'includeSignature', 'include_signature'), default=True),
        include_timestamps=_flag(_option(sources, 'includeTimestamps', 'include_timestamps'), default=True),
        include_footer=_flag(_option(sources, 'includeFooter', 'include_footer'), default=True),
    )


def _explicit_transcript(body: Mapping[str, Any]) -> str | None:
    text = _optional_text(_first(body, 'transcriptText', 'transcript_text', 'transcript'))
    if text:
        return text
    whisper = _as_mapping(body.get('whisper'))
    return _optional_text(_first(whisper, 'transcript', 'text'))


def normalize_report_input(
    payload: Mapping[str, Any] | ReportInput | None,
    *,
    options: Mapping[str, Any] | ReportOptions | None = None,
) -> ReportInput:
    """Map any accepted external payload shape onto one canonical ``ReportInput``.

    Accepts the web client's ``{data, options}`` envelope, a
    ``structuredSummary`` wrapper, or a flat record, in camelCase or
    snake_case. ``options`` overrides whatever options travel with the
    payload. Raises ``RenderFailure`` only when the summary cannot be turned
    into text at all.
    """
    if isinstance(options, ReportOptions):
        explicit_options: Mapping[str, Any] = options.model_dump(exclude_unset=True)
    else:
        explicit_options = _as_mapping(options)

    if isinstance(payload, ReportInput):
        if not explicit_options:
            return payload
        options_model = _build_options({}, payload.options.model_dump(), explicit_options)
        return payload.model_copy(update={'options': options_model})

    body, carried_options = _unwrap(_as_mapping(payload))

    summary = _coerce_summary(_first(body, 'summary', 'structuredSummaryText', 'structured_summary_text'))
    quotes = _text_list(_first(body, 'notableQuotes', 'notable_quotes'))
    transcript = _explicit_transcript(body)
    transcript_label = _optional_text(_first(body, 'transcriptLabel', 'transcript_label'))

    if transcript is None and len(quotes) >= 2 and _WITNESS_BANNER.search(quotes[0]):
        transcript_label = transcript_label or quotes[0]
        transcript = quotes[1]
        quotes = quotes[2:]

    return ReportInput(
        summary=summary,
        participants=_text_list(_first(body, 'participants')),
        key_events=_text_list(_first(body, 'keyEvents', 'key_events', 'timestampedLog', 'timestamped_log')),
        context=_build_context(body, summary),
        notable_quotes=quotes,
        report_relevance=_build_relevance(body),
        video_url=_optional_text(_first(body, 'videoUrl', 'video_url')),
        transcript_text=transcript,
        transcript_label=transcript_label,
        options=_build_options(body, carried_options, explicit_options),
    )
