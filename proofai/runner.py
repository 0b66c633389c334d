from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any

from proofai.adapters.geocode import GeocodeAdapter, GeocodeConfig
from proofai.adapters.llm import BasicLLMClient, BasicLLMConfig, IncidentSummarizer
from proofai.config import Settings, get_settings
from proofai.report.normalize import normalize_report_input
from proofai.report.report_layout import LayoutConfig, ReportLayoutEngine, resolve_case_id
from proofai.storage import save_report_pdf, write_bytes_atomic
from proofai.types import ReportInput, ReportOptions, ReportResult, utcnow


logger = logging.getLogger(__name__)


def layout_config_from_settings(settings: Settings | None = None) -> LayoutConfig:
    settings = settings or get_settings()
    return LayoutConfig(
        title=settings.report_title,
        brand_name=settings.report_brand_name,
        brand_url=settings.report_brand_url,
        default_reviewer=settings.report_default_reviewer,
    )


def _build_summarizer() -> IncidentSummarizer:
    settings = get_settings()
    return IncidentSummarizer(
        BasicLLMClient(
            BasicLLMConfig(
                base_url=settings.openai_base_url,
                api_key=settings.openai_api_key,
                model=settings.summary_model,
                timeout_seconds=settings.summary_timeout_seconds,
                temperature=settings.summary_temperature,
                max_tokens=settings.summary_max_tokens,
            )
        )
    )


def _build_geocoder() -> GeocodeAdapter:
    settings = get_settings()
    return GeocodeAdapter(
        GeocodeConfig(
            base_url=settings.geocode_base_url,
            api_key=settings.geocode_api_key,
            timeout_seconds=settings.geocode_timeout_seconds,
        )
    )


async def prepare_report_input(
    transcript: str,
    *,
    lat: float | None = None,
    lng: float | None = None,
    video_url: str | None = None,
    summarizer: IncidentSummarizer | None = None,
    geocoder: GeocodeAdapter | None = None,
) -> ReportInput:
    """Summarize a transcript and enrich the location before layout."""
    summarizer = summarizer or _build_summarizer()
    report = await summarizer.summarize(transcript, video_url=video_url)

    if lat is None or lng is None:
        return report

    geocoder = geocoder or _build_geocoder()
    try:
        address = await geocoder.reverse(lat, lng)
    except Exception as exc:
        logger.warning('Geocoding failed for %s,%s: %s', lat, lng, exc)
        return report

    context = report.context.model_copy(update={'location': address})
    return report.model_copy(update={'context': context})


def generate_report(
    payload: Mapping[str, Any] | ReportInput | None,
    *,
    options: Mapping[str, Any] | ReportOptions | None = None,
    now: datetime | None = None,
    persist: bool = True,
    output_path: Path | None = None,
    config: LayoutConfig | None = None,
) -> ReportResult:
    """Normalize, render and optionally store one report.

    Rendering never touches the filesystem; the bytes are written afterwards,
    to ``output_path`` when given, otherwise under the reports directory when
    ``persist`` is set.
    """
    now = now or utcnow()
    report = normalize_report_input(payload, options=options)
    engine = ReportLayoutEngine(config or layout_config_from_settings())
    rendered = engine.layout(report, now=now)

    case_id = resolve_case_id(report, now)
    result = ReportResult(
        case_id=case_id,
        page_count=rendered.page_count,
        byte_size=len(rendered.pdf),
        generated_at=now,
        pdf=rendered.pdf,
    )

    if output_path is not None:
        write_bytes_atomic(output_path, rendered.pdf)
        result.pdf_path = output_path
    elif persist:
        pdf_path, meta_path = save_report_pdf(
            case_id,
            rendered.pdf,
            report,
            page_count=rendered.page_count,
            generated_at=now,
        )
        result.pdf_path = pdf_path
        result.metadata_path = meta_path

    logger.info('Generated report %s (%s pages, %s bytes)', case_id, result.page_count, result.byte_size)
    return result
