from __future__ import annotations

import pytest

from proofai.report.normalize import normalize_report_input
from proofai.report.report_layout import RenderFailure
from proofai.types import ReportInput, ReportOptions


def test_flat_camel_case_record(example_payload):
    report = normalize_report_input(example_payload)

    assert report.summary == 'Incident occurred at 3pm.'
    assert report.participants == ['A', 'B']
    assert report.key_events == []
    assert report.context.time == '3pm'
    assert report.context.location is None
    assert report.context.environmental_factors is None
    assert report.report_relevance.hr is True
    assert report.report_relevance.legal is False
    assert report.report_relevance.explanation == 'HR matter'
    assert report.options.case_id == 'X-1'
    assert report.options.confidential is True


def test_generate_pdf_envelope_and_option_override():
    payload = {
        'data': {'summary': 'Body', 'options': {'reviewedBy': 'Inner', 'confidential': True}},
        'options': {'caseId': 'CASE-2'},
    }
    report = normalize_report_input(payload, options={'reviewed_by': 'Explicit'})

    assert report.summary == 'Body'
    assert report.options.case_id == 'CASE-2'
    assert report.options.reviewed_by == 'Explicit'
    assert report.options.confidential is True


def test_structured_summary_wrapper_snake_case():
    payload = {
        'structured_summary': {
            'summary': 'Wrapped',
            'key_events': ['[00:01] Start'],
            'report_relevance': {'safety': 'yes'},
            'context': {'environmental_factors': 'Rain'},
        }
    }
    report = normalize_report_input(payload)

    assert report.summary == 'Wrapped'
    assert report.key_events == ['[00:01] Start']
    assert report.report_relevance.safety is True
    assert report.context.environmental_factors == 'Rain'


def test_list_fields_accept_comma_strings_and_drop_blanks():
    report = normalize_report_input({'participants': 'Ann, Bob, ', 'notableQuotes': ['  ', None, 'Stop!', 7]})

    assert report.participants == ['Ann', 'Bob']
    assert report.notable_quotes == ['Stop!', '7']


@pytest.mark.parametrize(
    ('value', 'expected'),
    [
        ('Plain text', 'Plain text'),
        ('   ', None),
        (None, None),
        (42, '42'),
        (['First line', 'Second line'], 'First line\nSecond line'),
        ({'structuredSummaryText': 'From dict'}, 'From dict'),
        ('Café'.encode('utf-8'), 'Café'),
    ],
)
def test_summary_coercion(value, expected):
    assert normalize_report_input({'summary': value}).summary == expected


@pytest.mark.parametrize('value', [object(), True, b'\xff\xfe\xfa'])
def test_uncoercible_summary_raises(value):
    with pytest.raises(RenderFailure):
        normalize_report_input({'summary': value})


def test_location_from_flat_keys_and_summary_line():
    assert normalize_report_input({'geocodedAddress': '1 Elm St'}).context.location == '1 Elm St'

    report = normalize_report_input({'summary': 'Overview\n\U0001F4CD Location: Dock 4, Pier 9\nMore'})
    assert report.context.location == 'Dock 4, Pier 9'


def test_relevance_flags_accept_strings_and_numbers():
    report = normalize_report_input({'reportRelevance': {'legal': 'Yes', 'hr': 0, 'safety': 1}})

    assert report.report_relevance.legal is True
    assert report.report_relevance.hr is False
    assert report.report_relevance.safety is True


def test_explicit_transcript_field():
    report = normalize_report_input({'transcriptText': 'Said things.', 'notableQuotes': ['Quote']})

    assert report.transcript_text == 'Said things.'
    assert report.notable_quotes == ['Quote']


def test_whisper_transcript():
    assert normalize_report_input({'whisper': {'transcript': 'Heard.'}}).transcript_text == 'Heard.'


def test_legacy_witness_statement_quotes_become_transcript():
    payload = {'notableQuotes': ['\U0001F399️ WITNESS STATEMENT', 'I saw the car.', 'Another quote']}
    report = normalize_report_input(payload)

    assert report.transcript_label == '\U0001F399️ WITNESS STATEMENT'
    assert report.transcript_text == 'I saw the car.'
    assert report.notable_quotes == ['Another quote']


def test_ordinary_quotes_are_left_alone():
    report = normalize_report_input({'notableQuotes': ['Get out', 'Now']})

    assert report.transcript_text is None
    assert report.notable_quotes == ['Get out', 'Now']


def test_empty_payload_gives_defaults():
    assert normalize_report_input(None) == ReportInput()
    assert normalize_report_input({}) == ReportInput()


def test_canonical_input_passes_through_with_option_merge():
    original = ReportInput(summary='Same', options=ReportOptions(case_id='A-1', reviewed_by='Kim'))

    assert normalize_report_input(original) is original

    merged = normalize_report_input(original, options={'confidential': True})
    assert merged.summary == 'Same'
    assert merged.options.case_id == 'A-1'
    assert merged.options.reviewed_by == 'Kim'
    assert merged.options.confidential is True


def test_include_options_default_on_and_accept_camel_case():
    assert normalize_report_input({}).options.include_signature is True

    options = normalize_report_input(
        {'options': {'includeSignature': False, 'includeTimestamps': 'no', 'include_footer': 'false'}}
    ).options
    assert options.include_signature is False
    assert options.include_timestamps is False
    assert options.include_footer is False


def test_explicit_options_model_only_overrides_fields_it_sets():
    payload = {'summary': 'x', 'options': {'confidential': True, 'watermark': True, 'includeFooter': False}}
    report = normalize_report_input(payload, options=ReportOptions(case_id='Z-9'))

    assert report.options.case_id == 'Z-9'
    assert report.options.confidential is True
    assert report.options.watermark is True
    assert report.options.include_footer is False

    cleared = normalize_report_input(payload, options=ReportOptions(confidential=False))
    assert cleared.options.confidential is False
