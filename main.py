from __future__ import annotations

import argparse
import asyncio
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import openai

from proofai.config import get_settings
from proofai.report.normalize import normalize_report_input
from proofai.report.report_layout import RenderFailure
from proofai.report.summary_text import format_summary
from proofai.runner import generate_report, layout_config_from_settings, prepare_report_input
from proofai.types import ReportResult


logger = logging.getLogger(__name__)


def _print_json(payload: dict) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _error(message: str) -> int:
    _print_json({'status': 'error', 'message': message})
    return 2


def _load_payload(path_value: str) -> dict[str, Any] | None:
    path = Path(path_value).expanduser().resolve()
    if not path.exists() or not path.is_file():
        _error(f'Input not found: {path}')
        return None
    try:
        payload = json.loads(path.read_text(encoding='utf-8'))
    except json.JSONDecodeError as exc:
        _error(f'Input is not valid JSON: {exc}')
        return None
    if not isinstance(payload, dict):
        _error('Input must be a JSON object')
        return None
    return payload


def _parse_now(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)


def _cli_options(args: argparse.Namespace) -> dict[str, Any]:
    options: dict[str, Any] = {}
    if getattr(args, 'case_id', None):
        options['case_id'] = args.case_id
    if getattr(args, 'reviewed_by', None):
        options['reviewed_by'] = args.reviewed_by
    if getattr(args, 'confidential', None) is not None:
        options['confidential'] = args.confidential
    if getattr(args, 'watermark', False):
        options['watermark'] = True
    for flag, key in (('no_signature', 'include_signature'), ('no_timestamps', 'include_timestamps'), ('no_footer', 'include_footer')):
        if getattr(args, flag, False):
            options[key] = False
    return options


def _result_response(result: ReportResult) -> dict:
    return {
        'status': 'ok',
        **result.model_dump(mode='json'),
    }


def cmd_render(args: argparse.Namespace) -> int:
    payload = _load_payload(args.input)
    if payload is None:
        return 2
    try:
        now = _parse_now(args.now)
    except ValueError as exc:
        return _error(f'Invalid --now timestamp: {exc}')

    output_path = Path(args.output).expanduser().resolve() if args.output else None
    try:
        result = generate_report(
            payload,
            options=_cli_options(args),
            now=now,
            output_path=output_path,
        )
    except RenderFailure as exc:
        return _error(f'Report generation failed: {exc}')
    except (ValueError, OSError) as exc:
        return _error(f'Could not store report: {exc}')

    _print_json(_result_response(result))
    return 0


def cmd_text(args: argparse.Namespace) -> int:
    payload = _load_payload(args.input)
    if payload is None:
        return 2
    try:
        report = normalize_report_input(payload, options=_cli_options(args))
        now = _parse_now(args.now)
    except (RenderFailure, ValueError) as exc:
        return _error(str(exc))

    print(format_summary(report, now=now, config=layout_config_from_settings()))
    return 0


def cmd_summarize(args: argparse.Namespace) -> int:
    transcript_path = Path(args.transcript).expanduser().resolve()
    if not transcript_path.exists() or not transcript_path.is_file():
        return _error(f'Transcript not found: {transcript_path}')
    transcript = transcript_path.read_text(encoding='utf-8')

    try:
        report = asyncio.run(
            prepare_report_input(
                transcript,
                lat=args.lat,
                lng=args.lng,
                video_url=args.video_url,
            )
        )
    except (RuntimeError, openai.OpenAIError) as exc:
        return _error(f'Summary generation failed: {exc}')

    if not args.render:
        _print_json(report.model_dump(mode='json'))
        return 0

    try:
        result = generate_report(report, options=_cli_options(args))
    except RenderFailure as exc:
        return _error(f'Report generation failed: {exc}')
    except (ValueError, OSError) as exc:
        return _error(f'Could not store report: {exc}')
    _print_json(_result_response(result))
    return 0


def _add_option_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--case-id', required=False, help='Case identifier shown on the report')
    parser.add_argument('--reviewed-by', required=False, help='Name for the "Prepared by" block')
    parser.add_argument(
        '--confidential',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Show the confidentiality notice',
    )
    parser.add_argument('--watermark', action='store_true', help='Stamp a watermark on every page')
    parser.add_argument('--no-signature', action='store_true', help='Leave out the "Prepared by" block')
    parser.add_argument('--no-timestamps', action='store_true', help='Leave out the generation timestamp row')
    parser.add_argument('--no-footer', action='store_true', help='Leave out the branded footer band')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='ProofAI incident report CLI')
    sub = parser.add_subparsers(dest='command', required=True)

    render = sub.add_parser('render', help='Render a report payload to PDF')
    render.add_argument('--input', required=True, help='Path to a JSON report payload')
    render.add_argument('--output', required=False, help='Write the PDF here instead of the reports directory')
    render.add_argument('--now', required=False, help='ISO timestamp to stamp on the report')
    _add_option_flags(render)
    render.set_defaults(func=cmd_render)

    text = sub.add_parser('text', help='Print the plain-text summary of a payload')
    text.add_argument('--input', required=True, help='Path to a JSON report payload')
    text.add_argument('--now', required=False, help='ISO timestamp to stamp on the summary')
    _add_option_flags(text)
    text.set_defaults(func=cmd_text)

    summarize = sub.add_parser('summarize', help='Summarize a transcript into a report payload')
    summarize.add_argument('--transcript', required=True, help='Path to a UTF-8 transcript file')
    summarize.add_argument('--video-url', required=False, help='Reference link to the recording')
    summarize.add_argument('--lat', type=float, required=False)
    summarize.add_argument('--lng', type=float, required=False)
    summarize.add_argument('--render', action='store_true', help='Render and store the PDF as well')
    _add_option_flags(summarize)
    summarize.set_defaults(func=cmd_summarize)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, str(settings.log_level).upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    return int(args.func(args))


if __name__ == '__main__':
    raise SystemExit(main())
