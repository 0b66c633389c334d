from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas as pdfcanvas

from proofai.types import ReportInput, utcnow


logger = logging.getLogger(__name__)

FALLBACK_SUMMARY = 'No summary provided.'
FALLBACK_TIME = 'Time not available.'
FALLBACK_LOCATION = 'Location not available.'
FALLBACK_ENVIRONMENT = 'N/A'
FALLBACK_EXPLANATION = 'No explanation provided.'
FALLBACK_PARTICIPANTS = 'None listed.'
FALLBACK_KEY_EVENTS = 'None recorded.'
FALLBACK_QUOTES = 'No quotes provided.'

# ZapfDingbats codes for the heavy check mark and the heavy ballot X.
CHECK_GLYPH = '4'
CROSS_GLYPH = '8'


class RenderFailure(RuntimeError):
    """The report could not be laid out; no document was produced."""


@dataclass(frozen=True)
class LayoutConfig:
    page_size: tuple[float, float] = letter
    margin: float = 50.0
    line_height: float = 20.0
    text_leading: float = 12.0
    transcript_leading: float = 14.0
    header_height: float = 80.0
    accent_stripe_height: float = 2.0
    footer_height: float = 50.0
    bottom_margin: float = 60.0
    row_half_height: float = 12.0
    section_gap: float = 20.0
    section_band_height: float = 32.0
    section_advance: float = 30.0
    section_padding: float = 8.0

    body_font: str = 'Helvetica'
    bold_font: str = 'Helvetica-Bold'
    glyph_font: str = 'ZapfDingbats'
    title_font_size: float = 28.0
    section_font_size: float = 14.0
    body_font_size: float = 11.0
    small_font_size: float = 10.0

    brand_color: str = '#2C3E50'
    accent_color: str = '#3498DB'
    row_color: str = '#F7FAFC'
    label_color: str = '#4B5563'
    value_color: str = '#1E293B'
    body_color: str = '#3C3C3C'
    rule_color: str = '#C8C8C8'
    muted_color: str = '#646464'
    warning_fill_color: str = '#FDEBEB'
    warning_text_color: str = '#B40000'
    highlight_color: str = '#FFFBEB'
    yes_color: str = '#15803D'
    watermark_color: str = '#94A3B8'

    title: str = 'ProofAI Legal Analysis Report'
    brand_name: str = 'ProofAI'
    brand_url: str = 'www.proofai.app'
    default_reviewer: str = 'ProofAI Legal Assistant'
    confidential_notice: str = 'CONFIDENTIAL - For authorized personnel only'
    transcript_label: str = 'WITNESS STATEMENT'
    watermark_text: str = 'PROOFAI EVIDENCE'

    @property
    def page_width(self) -> float:
        return float(self.page_size[0])

    @property
    def page_height(self) -> float:
        return float(self.page_size[1])

    @property
    def content_width(self) -> float:
        return self.page_width - 2 * self.margin

    @property
    def content_top(self) -> float:
        return self.margin

    @property
    def body_start(self) -> float:
        # First metadata row sits below the header band and its accent stripe.
        return self.header_height + self.accent_stripe_height + 24.0

    @property
    def break_threshold(self) -> float:
        return self.page_height - self.bottom_margin


@dataclass
class Cursor:
    page_index: int = 0
    y: float = 0.0


@dataclass(frozen=True)
class Placement:
    """One drawn element; ``top``/``bottom`` are measured down from the page top."""

    page: int
    kind: str
    text: str
    top: float
    bottom: float


@dataclass
class RenderedReport:
    pdf: bytes
    page_count: int
    placements: list[Placement] = field(default_factory=list)

    def texts(self, kind: str | None = None) -> list[str]:
        return [item.text for item in self.placements if kind is None or item.kind == kind]


class _DeferredFooterCanvas(pdfcanvas.Canvas):
    """Canvas that holds finished pages until ``save`` so footers know the page total."""

    def __init__(self, *args, page_decorator: Callable[[pdfcanvas.Canvas, int, int], None], **kwargs):
        pdfcanvas.Canvas.__init__(self, *args, **kwargs)
        self._page_decorator = page_decorator
        self._saved_page_states: list[dict[str, Any]] = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total = len(self._saved_page_states)
        for number, state in enumerate(self._saved_page_states, start=1):
            self.__dict__.update(state)
            self._page_decorator(self, number, total)
            pdfcanvas.Canvas.showPage(self)
        pdfcanvas.Canvas.save(self)


def _pdf_safe_text(value: Any) -> str:
    if value is None:
        return ''
    text = str(value).replace('\r\n', '\n').replace('\r', '\n').replace('\t', '    ')
    # Standard PDF fonts only carry the WinAnsi repertoire.
    return text.encode('cp1252', 'ignore').decode('cp1252')


def _single_line(value: str) -> str:
    return ' '.join(value.split())


def _text_or(value: Any, fallback: str) -> str:
    if isinstance(value, bool) or value is None:
        return fallback
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        return fallback
    cleaned = _pdf_safe_text(value).strip()
    return cleaned or fallback


def _text_items(values: Any) -> list[str]:
    if not isinstance(values, (list, tuple)):
        return []
    items: list[str] = []
    for value in values:
        text = _text_or(value, '')
        if text:
            items.append(_single_line(text))
    return items


def _summary_text(value: Any) -> str:
    if value is None or (isinstance(value, (str, int, float)) and not isinstance(value, bool)):
        return _text_or(value, FALLBACK_SUMMARY)
    raise RenderFailure(f'Report summary must be text, got {type(value).__name__}')


def format_timestamp(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')


def resolve_case_id(report: ReportInput, now: datetime) -> str:
    return _single_line(_text_or(report.options.case_id, f'IR-{now:%m%d%Y}'))


def _wrap_text(text: str, font: str, size: float, max_width: float) -> list[str]:
    lines: list[str] = []
    for paragraph in text.split('\n'):
        words = paragraph.split()
        if not words:
            lines.append('')
            continue
        current = ''
        for word in words:
            candidate = word if not current else f'{current} {word}'
            if stringWidth(candidate, font, size) <= max_width:
                current = candidate
                continue
            if current:
                lines.append(current)
                current = ''
            if stringWidth(word, font, size) <= max_width:
                current = word
                continue
            chunk = ''
            for ch in word:
                if not chunk or stringWidth(chunk + ch, font, size) <= max_width:
                    chunk += ch
                else:
                    lines.append(chunk)
                    chunk = ch
            current = chunk
        if current:
            lines.append(current)

    while lines and not lines[-1]:
        lines.pop()
    while lines and not lines[0]:
        lines.pop(0)
    return lines or ['']


def _truncate(text: str, font: str, size: float, max_width: float) -> str:
    if stringWidth(text, font, size) <= max_width:
        return text
    ellipsis = '...'
    while text and stringWidth(text + ellipsis, font, size) > max_width:
        text = text[:-1]
    return text + ellipsis


class _LayoutSession:
    """Cursor, canvas and placement log for a single ``render`` call."""

    def __init__(self, config: LayoutConfig, report: ReportInput, now: datetime):
        self.config = config
        self.report = report
        self.now = now
        self.cursor = Cursor(page_index=0, y=config.body_start)
        self.placements: list[Placement] = []
        self.buffer = io.BytesIO()
        self.canvas = _DeferredFooterCanvas(
            self.buffer,
            pagesize=config.page_size,
            invariant=1,
            page_decorator=self._decorate_page,
        )

    # ---- drawing helpers (top-down coordinates)

    def _color(self, value: str):
        return colors.HexColor(value)

    def _draw_text(self, x: float, y: float, text: str, *, font: str, size: float, color: str) -> None:
        self.canvas.setFont(font, size)
        self.canvas.setFillColor(self._color(color))
        self.canvas.drawString(x, self.config.page_height - y, text)

    def _fill_rect(self, x: float, top: float, width: float, height: float, color: str) -> None:
        self.canvas.setFillColor(self._color(color))
        self.canvas.rect(x, self.config.page_height - top - height, width, height, fill=1, stroke=0)

    def _rule(self, x1: float, x2: float, y: float, *, color: str, width: float = 0.7) -> None:
        self.canvas.setStrokeColor(self._color(color))
        self.canvas.setLineWidth(width)
        y_pdf = self.config.page_height - y
        self.canvas.line(x1, y_pdf, x2, y_pdf)

    def _record(self, kind: str, text: str, top: float, bottom: float) -> None:
        self.placements.append(
            Placement(page=self.cursor.page_index + 1, kind=kind, text=text, top=top, bottom=bottom)
        )

    # ---- page management

    def new_page(self) -> None:
        self.canvas.showPage()
        self.cursor.page_index += 1
        self.cursor.y = self.config.content_top

    def ensure_room(self, extent_below: float) -> None:
        if self.cursor.y + extent_below > self.config.break_threshold:
            self.new_page()

    # ---- layout primitives

    def header_band(self) -> None:
        cfg = self.config
        self._fill_rect(0, 0, cfg.page_width, cfg.header_height, cfg.brand_color)
        self._fill_rect(0, cfg.header_height, cfg.page_width, cfg.accent_stripe_height, cfg.accent_color)

        title = _single_line(_text_or(cfg.title, 'Report'))
        size = cfg.title_font_size
        while size > 12 and stringWidth(title, cfg.bold_font, size) > cfg.content_width:
            size -= 1
        width = stringWidth(title, cfg.bold_font, size)
        self._draw_text(
            (cfg.page_width - width) / 2,
            cfg.margin,
            title,
            font=cfg.bold_font,
            size=size,
            color='#FFFFFF',
        )
        self._record('title', title, 0, cfg.header_height)

    def metadata_field(self, label: str, value: str) -> None:
        cfg = self.config
        self.ensure_room(8)
        y = self.cursor.y
        self._fill_rect(cfg.margin - 10, y - 16, cfg.content_width + 20, 24, cfg.row_color)

        label_text = f'{label}:'
        self._draw_text(cfg.margin, y, label_text, font=cfg.bold_font, size=cfg.body_font_size, color=cfg.label_color)
        offset = stringWidth(f'{label_text} ', cfg.bold_font, cfg.body_font_size)
        shown = _truncate(value, cfg.body_font, cfg.body_font_size, cfg.content_width - offset)
        self._draw_text(cfg.margin + offset, y, shown, font=cfg.body_font, size=cfg.body_font_size, color=cfg.value_color)

        self._record('field', f'{label_text} {value}', y - 16, y + 8)
        self.cursor.y += cfg.line_height

    def confidential_notice(self) -> None:
        cfg = self.config
        self.ensure_room(17)
        y = self.cursor.y
        self._fill_rect(cfg.margin - 5, y - 5, cfg.content_width + 10, 22, cfg.warning_fill_color)
        self._draw_text(
            cfg.margin,
            y + 8,
            cfg.confidential_notice,
            font=cfg.bold_font,
            size=cfg.small_font_size,
            color=cfg.warning_text_color,
        )
        self._record('notice', cfg.confidential_notice, y - 5, y + 17)
        self.cursor.y += cfg.line_height + 10

    def horizontal_rule(self) -> None:
        cfg = self.config
        self.cursor.y += 2
        self._rule(cfg.margin, cfg.page_width - cfg.margin, self.cursor.y, color=cfg.rule_color)
        self.cursor.y += cfg.line_height

    def section(self, title: str, content: str | list[str] | Callable[[], None]) -> None:
        cfg = self.config
        self.cursor.y += cfg.section_gap
        # Keep the title band with at least its first row.
        self.ensure_room(cfg.section_advance + cfg.row_half_height)
        y = self.cursor.y
        band_half = cfg.section_band_height / 2
        self._fill_rect(cfg.margin - 10, y - band_half, cfg.content_width + 20, cfg.section_band_height, cfg.brand_color)
        heading = title.upper()
        self._draw_text(cfg.margin, y + 5, heading, font=cfg.bold_font, size=cfg.section_font_size, color='#FFFFFF')
        self._record('section', heading, y - band_half, y + band_half)
        self.cursor.y += cfg.section_advance

        if callable(content):
            content()
        elif isinstance(content, list):
            for item in content:
                self.bullet_row(item)
        else:
            self.paragraph(content)
        self.cursor.y += cfg.section_padding

    def paragraph(self, text: str) -> None:
        cfg = self.config
        lines = _wrap_text(text, cfg.body_font, cfg.body_font_size, cfg.content_width - 10)
        for line in lines:
            self.ensure_room(3)
            y = self.cursor.y
            if line:
                self._draw_text(cfg.margin, y, line, font=cfg.body_font, size=cfg.body_font_size, color=cfg.body_color)
            self._record('line', line, y - cfg.body_font_size, y + 3)
            self.cursor.y += cfg.text_leading

    def _max_row_lines(self) -> int:
        cfg = self.config
        usable = cfg.break_threshold - cfg.content_top - 2 * cfg.row_half_height
        return max(1, int(usable // cfg.text_leading) + 1)

    def _place_row(self, line_count: int) -> tuple[float, float]:
        cfg = self.config
        extra = (line_count - 1) * cfg.text_leading
        self.ensure_room(cfg.row_half_height + extra)
        y = self.cursor.y
        top = y - cfg.row_half_height
        height = 2 * cfg.row_half_height + extra
        self._fill_rect(cfg.margin - 5, top, cfg.content_width + 10, height, cfg.row_color)
        return top, top + height

    def bullet_row(self, text: str) -> None:
        cfg = self.config
        text_x = cfg.margin + 20
        lines = _wrap_text(text, cfg.body_font, cfg.body_font_size, cfg.content_width - 20)
        limit = self._max_row_lines()
        # A bullet taller than a whole page continues as follow-on rows.
        chunks = [lines[i:i + limit] for i in range(0, len(lines), limit)]
        for index, chunk in enumerate(chunks):
            top, bottom = self._place_row(len(chunk))
            y = self.cursor.y
            if index == 0:
                self._draw_text(cfg.margin, y, '•', font=cfg.bold_font, size=cfg.body_font_size, color=cfg.body_color)
            for offset, line in enumerate(chunk):
                self._draw_text(
                    text_x,
                    y + offset * cfg.text_leading,
                    line,
                    font=cfg.body_font,
                    size=cfg.body_font_size,
                    color=cfg.body_color,
                )
            self._record('row', text if index == 0 else ' '.join(chunk), top, bottom)
            self.cursor.y += cfg.line_height + (len(chunk) - 1) * cfg.text_leading

    def flag_row(self, label: str, flag: bool) -> None:
        cfg = self.config
        top, bottom = self._place_row(1)
        y = self.cursor.y
        x = cfg.margin + 20
        label_text = f'{label}: '
        answer = 'Yes' if flag else 'No'

        self._draw_text(cfg.margin, y, '•', font=cfg.bold_font, size=cfg.body_font_size, color=cfg.body_color)
        self._draw_text(x, y, label_text, font=cfg.body_font, size=cfg.body_font_size, color=cfg.body_color)
        x += stringWidth(label_text, cfg.body_font, cfg.body_font_size)
        glyph_color = cfg.yes_color if flag else cfg.warning_text_color
        glyph = CHECK_GLYPH if flag else CROSS_GLYPH
        self._draw_text(x, y, glyph, font=cfg.glyph_font, size=cfg.body_font_size, color=glyph_color)
        x += stringWidth(glyph, cfg.glyph_font, cfg.body_font_size) + 4
        self._draw_text(x, y, answer, font=cfg.bold_font, size=cfg.body_font_size, color=cfg.body_color)

        self._record('row', f'{label}: {answer}', top, bottom)
        self.cursor.y += cfg.line_height

    def transcript_page(self, label: str, text: str) -> None:
        cfg = self.config
        self.new_page()
        self.cursor.y = cfg.content_top + 10

        y = self.cursor.y
        self._draw_text(cfg.margin, y, label, font=cfg.bold_font, size=cfg.section_font_size, color=cfg.brand_color)
        self._record('transcript_label', label, y - cfg.section_font_size, y + 4)
        underline_y = y + 6
        label_width = stringWidth(label, cfg.bold_font, cfg.section_font_size)
        self._rule(cfg.margin, cfg.margin + label_width, underline_y, color=cfg.accent_color, width=1.5)
        self.cursor.y = underline_y + cfg.line_height

        leading = cfg.transcript_leading
        lines = _wrap_text(text, cfg.body_font, cfg.body_font_size, cfg.content_width - 20)
        index = 0
        while index < len(lines):
            y = self.cursor.y
            fit = int((cfg.break_threshold - y + 6) // leading)
            if fit < 1:
                self.new_page()
                continue
            chunk = lines[index:index + fit]
            block_top = y - 14
            self._fill_rect(cfg.margin - 5, block_top, cfg.content_width + 10, len(chunk) * leading + 8, cfg.highlight_color)
            for offset, line in enumerate(chunk):
                line_y = y + offset * leading
                if line:
                    self._draw_text(cfg.margin + 10, line_y, line, font=cfg.body_font, size=cfg.body_font_size, color=cfg.value_color)
                self._record('transcript_line', line, line_y - cfg.body_font_size, line_y + 3)
            index += len(chunk)
            self.cursor.y = y + len(chunk) * leading
            if index < len(lines):
                self.new_page()

        self.cursor.y += 10
        self.ensure_room(4)
        y = self.cursor.y
        divider = '•   •   •'
        self.canvas.setFont(cfg.bold_font, cfg.body_font_size)
        self.canvas.setFillColor(self._color(cfg.muted_color))
        self.canvas.drawCentredString(cfg.page_width / 2, cfg.page_height - y, divider)
        self._record('divider', divider, y - cfg.body_font_size, y + 4)
        self.cursor.y += cfg.line_height

    def prepared_by(self, reviewer: str) -> None:
        cfg = self.config
        block = 2 * cfg.line_height + 4
        start = max(self.cursor.y + cfg.line_height, cfg.break_threshold - block)
        if start + block > cfg.break_threshold:
            self.new_page()
            start = cfg.break_threshold - block

        self._rule(cfg.margin, cfg.page_width - cfg.margin, start, color=cfg.rule_color)
        self._draw_text(
            cfg.margin,
            start + cfg.line_height,
            'Prepared by:',
            font=cfg.body_font,
            size=cfg.small_font_size,
            color=cfg.muted_color,
        )
        self._draw_text(
            cfg.margin,
            start + 2 * cfg.line_height,
            reviewer,
            font=cfg.bold_font,
            size=cfg.small_font_size,
            color=cfg.brand_color,
        )
        self._record('prepared_by', f'Prepared by: {reviewer}', start, start + block)
        self.cursor.y = start + block

    # ---- final pass

    def _decorate_page(self, canvas: pdfcanvas.Canvas, number: int, total: int) -> None:
        cfg = self.config
        width, height = cfg.page_width, cfg.page_height
        canvas.saveState()

        if self.report.options.watermark:
            canvas.saveState()
            canvas.setFillColor(self._color(cfg.watermark_color))
            canvas.setFillAlpha(0.15)
            canvas.setFont(cfg.bold_font, 60)
            canvas.translate(width / 2, height / 2)
            canvas.rotate(45)
            canvas.drawCentredString(0, 0, cfg.watermark_text)
            canvas.restoreState()

        # The page number pill is drawn even without the branded band.
        if self.report.options.include_footer:
            canvas.setFillColor(self._color(cfg.brand_color))
            canvas.rect(0, 0, width, cfg.footer_height, fill=1, stroke=0)

            canvas.setFillColor(colors.white)
            canvas.setFont(cfg.bold_font, cfg.small_font_size)
            canvas.drawString(cfg.margin, 25, f'Generated by {cfg.brand_name}')
            canvas.setFont(cfg.body_font, cfg.small_font_size)
            canvas.drawString(cfg.margin, 12, cfg.brand_url)

        page_text = f'Page {number} of {total}'
        text_width = stringWidth(page_text, cfg.bold_font, cfg.small_font_size)
        text_x = width - cfg.margin - text_width
        canvas.setFillColor(self._color(cfg.accent_color))
        canvas.roundRect(text_x - 10, 10, text_width + 20, 25, 6, fill=1, stroke=0)
        canvas.setFillColor(colors.white)
        canvas.setFont(cfg.bold_font, cfg.small_font_size)
        canvas.drawString(text_x, 20, page_text)

        canvas.restoreState()
        self.placements.append(
            Placement(page=number, kind='footer', text=page_text, top=height - cfg.footer_height, bottom=height)
        )


class ReportLayoutEngine:
    """Lays out a ``ReportInput`` as a paginated, branded PDF.

    The engine only holds its ``LayoutConfig``; every call to ``render`` or
    ``layout`` works on its own canvas and cursor, so one engine can serve
    concurrent callers. Layout is a single top-to-bottom pass followed by a
    footer pass over the buffered pages, which is when the final page count
    becomes known.
    """

    def __init__(self, config: LayoutConfig | None = None):
        self.config = config or LayoutConfig()

    def render(self, report: ReportInput, *, now: datetime | None = None) -> bytes:
        return self.layout(report, now=now).pdf

    def layout(self, report: ReportInput, *, now: datetime | None = None) -> RenderedReport:
        if not isinstance(report, ReportInput):
            raise RenderFailure(
                f'Expected a ReportInput, got {type(report).__name__}; normalize the payload first'
            )
        now = now or utcnow()

        try:
            session = _LayoutSession(self.config, report, now)
            self._lay_out(session)
            session.canvas.showPage()
            session.canvas.save()
        except RenderFailure:
            raise
        except Exception as exc:
            logger.exception('Report layout failed')
            raise RenderFailure(f'Failed to generate PDF report: {exc}') from exc

        page_count = session.cursor.page_index + 1
        pdf_bytes = session.buffer.getvalue()
        logger.debug('Rendered report: %s pages, %s bytes', page_count, len(pdf_bytes))
        return RenderedReport(pdf=pdf_bytes, page_count=page_count, placements=session.placements)

    def _lay_out(self, session: _LayoutSession) -> None:
        cfg = self.config
        report = session.report
        options = report.options
        context = report.context
        relevance = report.report_relevance

        summary = _summary_text(report.summary)
        case_id = resolve_case_id(report, session.now)
        location = _single_line(_text_or(context.location, ''))
        video_url = _single_line(_text_or(report.video_url, ''))

        session.canvas.setTitle(f'{cfg.title} - {case_id}')
        session.canvas.setAuthor(cfg.brand_name)
        session.canvas.setSubject('Incident report')
        session.canvas.setProducer(cfg.brand_name)

        session.header_band()
        session.metadata_field('Case ID', case_id)
        if options.include_timestamps:
            session.metadata_field('Generated', format_timestamp(session.now))
        if location:
            session.metadata_field('Location', location)
        if video_url:
            session.metadata_field('Video Reference', video_url)

        if options.confidential:
            session.confidential_notice()
        session.horizontal_rule()

        session.section('Main Summary', summary)
        session.section('Participants', _text_items(report.participants) or [FALLBACK_PARTICIPANTS])
        session.section('Key Events', _text_items(report.key_events) or [FALLBACK_KEY_EVENTS])
        session.section(
            'Context',
            [
                f'Time: {_single_line(_text_or(context.time, FALLBACK_TIME))}',
                f'Location: {location or FALLBACK_LOCATION}',
                f'Environmental Factors: {_single_line(_text_or(context.environmental_factors, FALLBACK_ENVIRONMENT))}',
            ],
        )
        session.section('Notable Quotes', _text_items(report.notable_quotes) or [FALLBACK_QUOTES])

        explanation = _single_line(_text_or(relevance.explanation, FALLBACK_EXPLANATION))

        def relevance_rows() -> None:
            session.flag_row('Legal', bool(relevance.legal))
            session.flag_row('HR', bool(relevance.hr))
            session.flag_row('Safety', bool(relevance.safety))
            session.bullet_row(f'Explanation: {explanation}')

        session.section('Legal, HR & Safety Relevance', relevance_rows)

        transcript = _text_or(report.transcript_text, '')
        if transcript:
            label = _single_line(_text_or(report.transcript_label, cfg.transcript_label))
            session.transcript_page(label, transcript)

        if options.include_signature:
            session.prepared_by(_single_line(_text_or(options.reviewed_by, cfg.default_reviewer)))


def render_report(
    report: ReportInput,
    *,
    now: datetime | None = None,
    config: LayoutConfig | None = None,
) -> bytes:
    return ReportLayoutEngine(config).render(report, now=now)
