from __future__ import annotations

import asyncio

import pytest

from conftest import pdf_page_count
from proofai.report.report_layout import LayoutConfig, RenderFailure
from proofai.runner import generate_report, layout_config_from_settings, prepare_report_input
from proofai.storage import read_json, reports_root
from proofai.types import ReportContext, ReportInput


class _Summarizer:
    def __init__(self, report: ReportInput):
        self.report = report
        self.calls = []

    async def summarize(self, transcript, *, video_url=None):
        self.calls.append((transcript, video_url))
        return self.report


class _Geocoder:
    def __init__(self, address=None, error=None):
        self.address = address
        self.error = error

    async def reverse(self, lat, lng):
        if self.error:
            raise self.error
        return self.address


def test_generate_report_persists_pdf_and_metadata(now, example_payload):
    result = generate_report(example_payload, now=now)

    assert result.case_id == 'X-1'
    assert result.pdf_path.parent == reports_root()
    assert result.pdf_path.name.startswith('X-1_')
    assert result.pdf_path.read_bytes() == result.pdf
    assert pdf_page_count(result.pdf) == result.page_count
    assert result.byte_size == len(result.pdf)
    assert read_json(result.metadata_path)['case_id'] == 'X-1'


def test_same_day_reports_without_case_id_are_both_kept(now):
    first = generate_report({'summary': 'First incident'}, now=now)
    second = generate_report({'summary': 'Second incident'}, now=now)

    assert first.case_id == second.case_id == 'IR-03152024'
    assert first.pdf_path != second.pdf_path
    assert first.pdf_path.read_bytes() == first.pdf
    assert second.pdf_path.read_bytes() == second.pdf
    assert read_json(first.metadata_path)['path'] == str(first.pdf_path)


def test_generate_report_to_explicit_path(tmp_path, now):
    target = tmp_path / 'out' / 'report.pdf'
    result = generate_report({'summary': 'Out of band'}, now=now, output_path=target)

    assert result.pdf_path == target
    assert result.metadata_path is None
    assert target.read_bytes().startswith(b'%PDF')
    assert list(reports_root().iterdir()) == []


def test_generate_report_without_persistence(now):
    result = generate_report(None, now=now, persist=False)

    assert result.case_id == 'IR-03152024'
    assert result.pdf_path is None
    assert result.pdf.startswith(b'%PDF')
    assert 'pdf' not in result.model_dump()


def test_generate_report_applies_option_overrides(now, example_payload):
    result = generate_report(example_payload, options={'case_id': 'OVERRIDE-3'}, now=now, persist=False)

    assert result.case_id == 'OVERRIDE-3'


def test_generate_report_propagates_render_failure(now):
    with pytest.raises(RenderFailure):
        generate_report({'summary': object()}, now=now, persist=False)


def test_layout_config_follows_settings(monkeypatch):
    from proofai.config import get_settings

    monkeypatch.setenv('REPORT_BRAND_NAME', 'Acme Safety')
    get_settings.cache_clear()
    cfg = layout_config_from_settings()

    assert isinstance(cfg, LayoutConfig)
    assert cfg.brand_name == 'Acme Safety'
    assert cfg.default_reviewer == 'ProofAI Legal Assistant'


def test_prepare_report_input_enriches_location():
    summarizer = _Summarizer(ReportInput(summary='s', context=ReportContext(time='noon', location='somewhere')))
    report = asyncio.run(
        prepare_report_input(
            'words',
            lat=40.0,
            lng=-73.0,
            video_url='https://v.test/2',
            summarizer=summarizer,
            geocoder=_Geocoder(address='5th Ave, New York'),
        )
    )

    assert summarizer.calls == [('words', 'https://v.test/2')]
    assert report.context.location == '5th Ave, New York'
    assert report.context.time == 'noon'


def test_prepare_report_input_keeps_location_when_geocoding_fails(caplog):
    original = ReportInput(context=ReportContext(location='From transcript'))
    report = asyncio.run(
        prepare_report_input(
            'words',
            lat=1.0,
            lng=2.0,
            summarizer=_Summarizer(original),
            geocoder=_Geocoder(error=RuntimeError('Missing GEOCODE_API_KEY')),
        )
    )

    assert report.context.location == 'From transcript'
    assert 'Geocoding failed' in caplog.text


def test_prepare_report_input_skips_geocoding_without_coordinates():
    original = ReportInput(summary='s')
    geocoder = _Geocoder(error=AssertionError('should not be called'))
    report = asyncio.run(prepare_report_input('words', summarizer=_Summarizer(original), geocoder=geocoder))

    assert report is original
