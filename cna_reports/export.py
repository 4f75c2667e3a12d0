#!/usr/bin/env python3
"""
CNA Reports Export Module
=========================
Serialises a ReportDocument into downloadable formats:
- PDF (paginated, per-section orientation, page X of Y footer)
- Word (.docx, one word-processor section per report section)
- Excel (.xlsx, one sheet per table plus a summary sheet)
- CSV (first table only)
- JSON (whole document, lossless)
- Tab-separated clipboard payload for pasting into spreadsheets

Every file export returns an ExportResult named
<slug(title)>-report-<YYYY-MM-DD>.<ext>.
"""

import asyncio
import base64
import binascii
import csv
import io
import itertools
import json
import os
import re
import tempfile
from datetime import date
from numbers import Number
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Set, Union
from xml.sax.saxutils import escape

from werkzeug.utils import secure_filename

from config_logging import (
    get_config, get_logger,
    ClipboardUnavailableError, DataNotReadyError, NoTabularDataError,
    RenderItemFailure, RendererUnavailableError, ValidationError,
)
from .constants import (
    COPY_SUCCESS_MESSAGE, DOCX_IMAGE_ERROR_TEXT, DOCX_IMAGE_SCALE, HEADING_COLORS,
    MIME_TYPES, NO_TABLE_COPY_MESSAGE, NO_TABLE_CSV_MESSAGE, NO_TABLE_SHEET_MESSAGE,
    PDF_IMAGE_ERROR_TEXT, TABLE_HEADER_COLOR, XLSX_COLUMN_PADDING, XLSX_EMPTY_SHEET,
    XLSX_SHEET_NAME_MAX, XLSX_SUMMARY_SHEET,
)
from .models import (
    ExportResult, ImageBlock, Orientation, ReportDocument, ReportSection, TableBlock,
)

# PDF export using reportlab
try:
    from reportlab.lib import colors
    from reportlab.lib.enums import TA_CENTER
    from reportlab.lib.pagesizes import A4, landscape, portrait
    from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
    from reportlab.lib.units import mm
    from reportlab.lib.utils import ImageReader
    from reportlab.pdfgen import canvas
    from reportlab.platypus import (
        BaseDocTemplate, CondPageBreak, Frame, NextPageTemplate, PageBreak,
        PageTemplate, Paragraph, Spacer, Table, TableStyle,
    )
    from reportlab.platypus import Image as RLImage
    PDF_AVAILABLE = True
except ImportError:
    PDF_AVAILABLE = False

# Word export using python-docx
try:
    from docx import Document
    from docx.enum.section import WD_ORIENT, WD_SECTION
    from docx.enum.text import WD_ALIGN_PARAGRAPH
    from docx.image.exceptions import UnrecognizedImageError
    from docx.oxml import OxmlElement
    from docx.oxml.ns import qn
    from docx.shared import Emu, RGBColor
    DOCX_AVAILABLE = True
except ImportError:
    DOCX_AVAILABLE = False

# Excel export using openpyxl
try:
    from openpyxl import Workbook
    from openpyxl.styles import Alignment, Font, PatternFill
    from openpyxl.utils import get_column_letter
    EXCEL_AVAILABLE = True
except ImportError:
    EXCEL_AVAILABLE = False

# System clipboard using pyperclip
try:
    import pyperclip
    CLIPBOARD_AVAILABLE = True
except ImportError:
    CLIPBOARD_AVAILABLE = False

logger = get_logger('cna_reports.export')

EMU_PER_PIXEL = 9525
_INVALID_SHEET_CHARS = re.compile(r'[\\/*?:\[\]]')
_WHITESPACE_RUN = re.compile(r'\s+')


# =============================================================================
# SHARED HELPERS
# =============================================================================

def slugify(title: str) -> str:
    """
    Lowercase the title and replace whitespace runs with hyphens.

    The result is passed through secure_filename, so path separators and
    leading dots never reach the file name.
    """
    return secure_filename(_WHITESPACE_RUN.sub('-', title.lower())) or 'untitled'


def create_file_name(title: str, extension: str, today: Optional[date] = None) -> str:
    """Build '<slug(title)>-report-<YYYY-MM-DD>.<ext>'."""
    today = today or date.today()
    return f"{slugify(title)}-report-{today.isoformat()}.{extension}"


def format_generated_date(value: date) -> str:
    """Long-form date used in headers and footers, e.g. 'October 19, 2026'."""
    return f"{value:%B} {value.day}, {value.year}"


def cell_text(value: Any) -> str:
    return '' if value is None else str(value)


def find_first_table(doc: ReportDocument) -> Optional[TableBlock]:
    """First table in section order, then block order within the section."""
    for _section, table in doc.iter_tables():
        return table
    return None


def table_to_delimited(table: TableBlock, delimiter: str) -> str:
    """Serialise a table with every cell quoted and embedded quotes doubled."""
    output = io.StringIO()
    writer = csv.writer(output, delimiter=delimiter, quoting=csv.QUOTE_ALL,
                        lineterminator='\n')
    writer.writerow([cell_text(h) for h in table.headers])
    writer.writerows([[cell_text(c) for c in row] for row in table.rows])
    return output.getvalue()


def decode_data_url(data_url: str) -> bytes:
    """Decode a base64 data URI into raw bytes."""
    header, sep, payload = data_url.partition(',')
    if not sep or not header.startswith('data:') or ';base64' not in header:
        raise ValueError("Image is not a base64 data URI")
    if not payload:
        raise ValueError("Image data URI has no payload")
    return base64.b64decode(payload, validate=True)


def _require_document(doc: Union[ReportDocument, Dict, None]) -> ReportDocument:
    if doc is None:
        raise DataNotReadyError()
    if isinstance(doc, dict):
        return ReportDocument.from_dict(doc)
    if not isinstance(doc, ReportDocument):
        raise ValidationError(f"Expected a ReportDocument, got {type(doc).__name__}",
                              field='doc')
    return doc


def _column_count(table: TableBlock) -> int:
    return max([len(table.headers)] + [len(r) for r in table.rows])


class BaseExporter:
    """Common state for one export call: branding, date stamp, filename."""

    format = ''
    extension = ''

    def __init__(self, org_name: Optional[str] = None, generated: Optional[date] = None):
        self.org_name = org_name or get_config().org_name
        self.generated = generated or date.today()
        self.generated_text = format_generated_date(self.generated)

    def file_name(self, doc: ReportDocument) -> str:
        return create_file_name(doc.title, self.extension, self.generated)

    def export(self, doc: Optional[ReportDocument]) -> ExportResult:
        doc = _require_document(doc)
        with logger.log_operation('report_export', format=self.format, title=doc.title):
            content = self.render(doc)
        result = ExportResult(
            filename=self.file_name(doc),
            content=content,
            mime_type=MIME_TYPES[self.format],
            format=self.format,
        )
        logger.info("Report exported", format=self.format, filename=result.filename,
                    bytes=result.size, sections=len(doc.sections))
        return result

    def render(self, doc: ReportDocument) -> bytes:
        raise NotImplementedError


# =============================================================================
# PDF
# =============================================================================

PDF_MARGIN_X = 15 * mm if PDF_AVAILABLE else 0
PDF_MARGIN_TOP = 20 * mm if PDF_AVAILABLE else 0
PDF_MARGIN_BOTTOM = 20 * mm if PDF_AVAILABLE else 0
PDF_SAFETY_MARGIN = 20 * mm if PDF_AVAILABLE else 0


if PDF_AVAILABLE:
    class ReportCanvas(canvas.Canvas):
        """
        Canvas that defers the running header and footer until save().

        Page states are buffered in showPage(); once the page count is known
        each page is replayed with its chrome drawn over the content.
        """

        def __init__(self, *args, report_title: str = '', footer_text: str = '', **kwargs):
            canvas.Canvas.__init__(self, *args, **kwargs)
            self._report_title = report_title
            self._footer_text = footer_text
            self._saved_page_states = []

        def showPage(self):
            self._saved_page_states.append(dict(self.__dict__))
            self._startPage()

        def save(self):
            page_count = len(self._saved_page_states)
            for page_number, state in enumerate(self._saved_page_states, 1):
                self.__dict__.update(state)
                self._draw_page_chrome(page_number, page_count)
                canvas.Canvas.showPage(self)
            canvas.Canvas.save(self)

        def _draw_page_chrome(self, page_number: int, page_count: int):
            width, height = self._pagesize
            self.saveState()
            self.setFont('Helvetica', 10)
            self.setFillGray(0.4)
            self.drawCentredString(width / 2, height - 10 * mm, self._report_title)
            self.drawString(PDF_MARGIN_X, 10 * mm, self._footer_text)
            self.drawRightString(width - PDF_MARGIN_X, 10 * mm,
                                 f"Page {page_number} of {page_count}")
            self.restoreState()


class PDFExporter(BaseExporter):
    """Export a report document to PDF."""

    format = 'pdf'
    extension = 'pdf'

    PAGE_SIZES = {
        Orientation.PORTRAIT: portrait(A4) if PDF_AVAILABLE else None,
        Orientation.LANDSCAPE: landscape(A4) if PDF_AVAILABLE else None,
    }

    def __init__(self, org_name: Optional[str] = None, generated: Optional[date] = None):
        if not PDF_AVAILABLE:
            raise RendererUnavailableError('PDF', 'reportlab')
        super().__init__(org_name, generated)
        self.styles = getSampleStyleSheet()
        self._setup_styles()

    def _setup_styles(self):
        self.styles.add(ParagraphStyle(
            name='ReportTitle', parent=self.styles['Heading1'],
            fontSize=18, leading=22, alignment=TA_CENTER, spaceAfter=10
        ))
        self.styles.add(ParagraphStyle(
            name='SectionHeading', parent=self.styles['Heading2'],
            fontSize=14, leading=18, spaceBefore=4, spaceAfter=6,
            fontName='Helvetica-Bold', textColor=colors.black
        ))
        self.styles.add(ParagraphStyle(
            name='ReportBody', parent=self.styles['Normal'],
            fontSize=10, leading=13, spaceAfter=3
        ))
        self.styles.add(ParagraphStyle(
            name='TableHeader', parent=self.styles['Normal'],
            fontSize=9, leading=11, fontName='Helvetica-Bold', textColor=colors.white
        ))
        self.styles.add(ParagraphStyle(
            name='TableCell', parent=self.styles['Normal'], fontSize=9, leading=11
        ))
        self.styles.add(ParagraphStyle(
            name='ImageError', parent=self.styles['Normal'],
            fontSize=10, leading=13, textColor=colors.red
        ))

    def _frame_size(self, orientation: Orientation):
        width, height = self.PAGE_SIZES[orientation]
        return (width - 2 * PDF_MARGIN_X, height - PDF_MARGIN_TOP - PDF_MARGIN_BOTTOM)

    def _page_template(self, orientation: Orientation) -> 'PageTemplate':
        frame_width, frame_height = self._frame_size(orientation)
        frame = Frame(PDF_MARGIN_X, PDF_MARGIN_BOTTOM, frame_width, frame_height,
                      leftPadding=0, rightPadding=0, topPadding=0, bottomPadding=0,
                      id=f'{orientation.value}_frame')
        return PageTemplate(id=orientation.value, frames=[frame],
                            pagesize=self.PAGE_SIZES[orientation])

    def render(self, doc: ReportDocument) -> bytes:
        first = doc.sections[0].orientation if doc.sections else Orientation.PORTRAIT
        other = Orientation.LANDSCAPE if first is Orientation.PORTRAIT else Orientation.PORTRAIT

        output = io.BytesIO()
        template = BaseDocTemplate(
            output,
            pagesize=self.PAGE_SIZES[first],
            pageTemplates=[self._page_template(first), self._page_template(other)],
            title=doc.title,
            author=self.org_name,
            leftMargin=PDF_MARGIN_X, rightMargin=PDF_MARGIN_X,
            topMargin=PDF_MARGIN_TOP, bottomMargin=PDF_MARGIN_BOTTOM,
        )
        template.build(
            self._build_story(doc, first),
            canvasmaker=lambda *args, **kwargs: ReportCanvas(
                *args,
                report_title=doc.title,
                footer_text=f"{self.org_name} - Generated on {self.generated_text}",
                **kwargs
            ),
        )
        return output.getvalue()

    def _build_story(self, doc: ReportDocument, first: Orientation) -> list:
        story = [Paragraph(escape(doc.title), self.styles['ReportTitle'])]
        current = first

        for section in doc.sections:
            if section.orientation is not current:
                story.append(NextPageTemplate(section.orientation.value))
                story.append(PageBreak())
                current = section.orientation

            story.append(CondPageBreak(PDF_SAFETY_MARGIN))
            story.append(self._heading(section))

            for block in section.content:
                story.append(CondPageBreak(PDF_SAFETY_MARGIN))
                story.extend(self._block_flowables(block, current))

            story.append(Spacer(1, 5 * mm))
        return story

    def _heading(self, section: ReportSection) -> 'Paragraph':
        style = self.styles['SectionHeading']
        if section.heading_style is not None:
            style = ParagraphStyle(
                name=f'SectionHeading{section.heading_style.value}', parent=style,
                textColor=colors.HexColor('#' + HEADING_COLORS[section.heading_style.value])
            )
        return Paragraph(escape(section.title), style)

    def _block_flowables(self, block, orientation: Orientation) -> list:
        if isinstance(block, str):
            return self._text_flowables(block)
        if isinstance(block, TableBlock):
            return self._table_flowables(block, orientation)
        if isinstance(block, ImageBlock):
            try:
                return self._image_flowables(block, orientation)
            except RenderItemFailure as e:
                logger.warning("Image could not be rendered in PDF; placeholder substituted",
                               reason=e.message)
                return [Paragraph(escape(PDF_IMAGE_ERROR_TEXT), self.styles['ImageError'])]
        raise ValidationError(f"Unsupported content block: {type(block).__name__}")

    def _text_flowables(self, text: str) -> list:
        flowables = []
        for line in text.split('\n'):
            if line.strip():
                flowables.append(Paragraph(escape(line), self.styles['ReportBody']))
            else:
                flowables.append(Spacer(1, 13))
        flowables.append(Spacer(1, 5))
        return flowables

    def _table_flowables(self, table: TableBlock, orientation: Orientation) -> list:
        column_count = _column_count(table)
        if column_count == 0:
            return []

        def pad(cells):
            return list(cells) + [''] * (column_count - len(cells))

        header_style, cell_style = self.styles['TableHeader'], self.styles['TableCell']
        data = [[Paragraph(escape(cell_text(h)), header_style) for h in pad(table.headers)]]
        for row in table.rows:
            data.append([Paragraph(escape(cell_text(c)), cell_style) for c in pad(row)])

        frame_width, _ = self._frame_size(orientation)
        grid = Table(data, colWidths=[frame_width / column_count] * column_count, repeatRows=1)
        grid.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#' + TABLE_HEADER_COLOR)),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#BFBFBF')),
            ('TOPPADDING', (0, 0), (-1, -1), 3),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 3),
        ]))
        return [grid, Spacer(1, 10)]

    def _image_flowables(self, image: ImageBlock, orientation: Orientation) -> list:
        if not image.width or not image.height or image.width <= 0 or image.height <= 0:
            raise RenderItemFailure("Image has no intrinsic size")
        try:
            raw = decode_data_url(image.data_url)
            reader = ImageReader(io.BytesIO(raw))
            reader.getSize()
            # Decode the pixels now; a truncated payload otherwise fails inside build()
            reader.getRGBData()
        except Exception as e:
            raise RenderItemFailure(f"Image data could not be decoded: {e}") from e

        frame_width, frame_height = self._frame_size(orientation)
        width = min(float(image.width), frame_width)
        height = image.height * width / image.width
        if height > frame_height - 20:
            height = frame_height - 20
            width = image.width * height / image.height
        return [RLImage(io.BytesIO(raw), width=width, height=height), Spacer(1, 10)]


# =============================================================================
# WORD
# =============================================================================

class DocxExporter(BaseExporter):
    """Export a report document to Word, one document section per report section."""

    format = 'docx'
    extension = 'docx'

    def __init__(self, org_name: Optional[str] = None, generated: Optional[date] = None,
                 image_scale: float = DOCX_IMAGE_SCALE):
        if not DOCX_AVAILABLE:
            raise RendererUnavailableError('DOCX', 'python-docx')
        super().__init__(org_name, generated)
        self.image_scale = image_scale

    def render(self, doc: ReportDocument) -> bytes:
        document = Document()
        document.core_properties.title = doc.title
        document.core_properties.author = self.org_name

        if not doc.sections:
            self._add_title(document, doc.title)
            self._apply_running_text(document.sections[0], doc.title)

        for index, section in enumerate(doc.sections):
            if index == 0:
                word_section = document.sections[0]
            else:
                word_section = document.add_section(WD_SECTION.NEW_PAGE)
            self._apply_orientation(word_section, section.orientation)
            self._apply_running_text(word_section, doc.title)

            if index == 0:
                self._add_title(document, doc.title)

            heading = document.add_heading(section.title, level=2)
            if section.heading_style is not None:
                color = RGBColor.from_string(HEADING_COLORS[section.heading_style.value])
                for run in heading.runs:
                    run.font.color.rgb = color

            for block in section.content:
                self._add_block(document, word_section, block)

            document.add_paragraph('')

        output = io.BytesIO()
        document.save(output)
        return output.getvalue()

    def _add_title(self, document, title: str):
        paragraph = document.add_heading(title, level=0)
        paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
        document.add_paragraph('')

    @staticmethod
    def _apply_orientation(word_section, orientation: Orientation):
        is_landscape = orientation is Orientation.LANDSCAPE
        width, height = word_section.page_width, word_section.page_height
        if is_landscape != (width > height):
            word_section.page_width, word_section.page_height = height, width
        word_section.orientation = WD_ORIENT.LANDSCAPE if is_landscape else WD_ORIENT.PORTRAIT

    def _apply_running_text(self, word_section, title: str):
        header = word_section.header
        header.is_linked_to_previous = False
        paragraph = header.paragraphs[0] if header.paragraphs else header.add_paragraph()
        paragraph.text = f"{title}\t\t{self.org_name}"
        paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER

        footer = word_section.footer
        footer.is_linked_to_previous = False
        paragraph = footer.paragraphs[0] if footer.paragraphs else footer.add_paragraph()
        paragraph.text = f"Generated on {self.generated_text}"
        paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER

    def _add_block(self, document, word_section, block):
        if isinstance(block, str):
            for line in block.split('\n'):
                paragraph = document.add_paragraph(line)
                paragraph.alignment = WD_ALIGN_PARAGRAPH.JUSTIFY
        elif isinstance(block, TableBlock):
            self._add_table(document, block)
        elif isinstance(block, ImageBlock):
            self._add_image(document, word_section, block)
        else:
            raise ValidationError(f"Unsupported content block: {type(block).__name__}")

    def _add_table(self, document, table: TableBlock):
        column_count = _column_count(table)
        if column_count == 0:
            return

        grid = document.add_table(rows=1, cols=column_count)
        grid.style = 'Table Grid'

        header_row = grid.rows[0]
        for cell, text in zip(header_row.cells, table.headers):
            run = cell.paragraphs[0].add_run(cell_text(text))
            run.bold = True
        self._mark_header_row(header_row)

        for row in table.rows:
            for cell, value in zip(grid.add_row().cells, row):
                cell.text = cell_text(value)

        self._set_full_width(grid)

    @staticmethod
    def _mark_header_row(row):
        tr_pr = row._tr.get_or_add_trPr()
        tbl_header = OxmlElement('w:tblHeader')
        tbl_header.set(qn('w:val'), 'true')
        tr_pr.append(tbl_header)

    @staticmethod
    def _set_full_width(grid):
        tbl_pr = grid._tbl.tblPr
        tbl_w = tbl_pr.find(qn('w:tblW'))
        if tbl_w is None:
            tbl_w = OxmlElement('w:tblW')
            tbl_pr.append(tbl_w)
        tbl_w.set(qn('w:type'), 'pct')
        tbl_w.set(qn('w:w'), '5000')

    def _add_image(self, document, word_section, image: ImageBlock):
        paragraph = document.add_paragraph()
        paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
        try:
            if not image.width or not image.height or image.width <= 0 or image.height <= 0:
                raise ValueError("Image has no intrinsic size")
            raw = decode_data_url(image.data_url)
            width = int(image.width * self.image_scale * EMU_PER_PIXEL)
            height = int(image.height * self.image_scale * EMU_PER_PIXEL)
            usable = word_section.page_width - word_section.left_margin - word_section.right_margin
            if width > usable:
                height = int(height * usable / width)
                width = int(usable)
            paragraph.add_run().add_picture(io.BytesIO(raw), width=Emu(width), height=Emu(height))
        except (ValueError, binascii.Error, UnrecognizedImageError) as e:
            logger.warning("Image could not be embedded in DOCX; placeholder substituted",
                           reason=str(e))
            paragraph.add_run(DOCX_IMAGE_ERROR_TEXT)


# =============================================================================
# EXCEL
# =============================================================================

def sanitize_sheet_name(title: str) -> str:
    """Strip characters Excel rejects in sheet names and truncate to its limit."""
    cleaned = _INVALID_SHEET_CHARS.sub('', title).strip().strip("'")
    return cleaned[:XLSX_SHEET_NAME_MAX].strip()


class ExcelExporter(BaseExporter):
    """Export a report document to Excel."""

    format = 'xlsx'
    extension = 'xlsx'

    HEADER_FILL = TABLE_HEADER_COLOR
    SUMMARY_COLUMN_WIDTH = 80

    def __init__(self, org_name: Optional[str] = None, generated: Optional[date] = None):
        if not EXCEL_AVAILABLE:
            raise RendererUnavailableError('Excel', 'openpyxl')
        super().__init__(org_name, generated)

    def render(self, doc: ReportDocument) -> bytes:
        self.wb = Workbook()
        self.wb.remove(self.wb.active)  # Remove default sheet
        self.wb.properties.title = doc.title
        self.wb.properties.creator = self.org_name

        self._used_names: Set[str] = {XLSX_SUMMARY_SHEET.lower(), XLSX_EMPTY_SHEET.lower()}
        self._sheet_numbers = itertools.count(1)

        table_sheets = self._create_table_sheets(doc)
        if doc.sections:
            self._create_summary_sheet(doc, table_sheets)
        if not table_sheets:
            ws = self.wb.create_sheet(XLSX_EMPTY_SHEET)
            ws['A1'] = NO_TABLE_SHEET_MESSAGE

        output = io.BytesIO()
        self.wb.save(output)
        return output.getvalue()

    def _unique_sheet_name(self, candidate: str) -> str:
        if candidate and candidate.lower() not in self._used_names:
            self._used_names.add(candidate.lower())
            return candidate
        while True:
            fallback = f"Sheet {next(self._sheet_numbers)}"
            if fallback.lower() not in self._used_names:
                self._used_names.add(fallback.lower())
                return fallback

    def _create_table_sheets(self, doc: ReportDocument) -> Dict[int, str]:
        """One sheet per table; returns id(table) -> sheet name."""
        sheets: Dict[int, str] = {}
        for section in doc.sections:
            base = sanitize_sheet_name(section.title)
            for position, table in enumerate(section.tables, 1):
                candidate = base
                if position > 1 and base:
                    suffix = f"-Table{position}"
                    candidate = base[:XLSX_SHEET_NAME_MAX - len(suffix)].rstrip() + suffix
                name = self._unique_sheet_name(candidate)
                self._write_table_sheet(self.wb.create_sheet(name), table)
                sheets[id(table)] = name
        return sheets

    def _write_table_sheet(self, ws, table: TableBlock):
        header_font = Font(bold=True, color='FFFFFF')
        header_fill = PatternFill(start_color=self.HEADER_FILL, end_color=self.HEADER_FILL,
                                  fill_type='solid')

        for col, header in enumerate(table.headers, 1):
            cell = self._write_cell(ws, 1, col, cell_text(header))
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = Alignment(horizontal='center')

        for row_num, row in enumerate(table.rows, 2):
            for col, value in enumerate(row, 1):
                self._write_cell(ws, row_num, col, self._cell_value(value))

        for col in range(1, _column_count(table) + 1):
            header = table.headers[col - 1] if col <= len(table.headers) else ''
            lengths = [len(cell_text(header))]
            lengths.extend(len(cell_text(r[col - 1])) for r in table.rows if col <= len(r))
            ws.column_dimensions[get_column_letter(col)].width = max(lengths) + XLSX_COLUMN_PADDING

    @staticmethod
    def _keep_as_text(cell):
        # openpyxl reads any string starting with '=' as a formula
        if isinstance(cell.value, str) and cell.data_type == 'f':
            cell.data_type = 's'
        return cell

    def _write_cell(self, ws, row: int, column: int, value: Any):
        return self._keep_as_text(ws.cell(row=row, column=column, value=value))

    @staticmethod
    def _cell_value(value: Any) -> Any:
        if value is None or isinstance(value, (str, Number)):
            return value
        return str(value)

    def _create_summary_sheet(self, doc: ReportDocument, table_sheets: Dict[int, str]):
        ws = self.wb.create_sheet(XLSX_SUMMARY_SHEET)

        ws.append([doc.title])
        ws['A1'].font = Font(bold=True, size=14)
        ws.append([f"Generated on {self.generated_text}"])
        ws['A2'].font = Font(italic=True, color='666666')
        ws.append([])

        for section in doc.sections:
            ws.append([section.title])
            ws.cell(row=ws.max_row, column=1).font = Font(bold=True)
            for block in section.content:
                if isinstance(block, str):
                    for line in block.split('\n'):
                        ws.append([f"  {line}"])
                elif isinstance(block, TableBlock):
                    columns = ', '.join(cell_text(h) for h in block.headers)
                    ws.append([f"  [Table: {columns}] see sheet '{table_sheets[id(block)]}'"])
            ws.append([])

        for row in ws.iter_rows():
            for cell in row:
                self._keep_as_text(cell)

        ws.column_dimensions['A'].width = self.SUMMARY_COLUMN_WIDTH
        self.wb.move_sheet(ws, offset=-self.wb.index(ws))


# =============================================================================
# CSV / JSON / CLIPBOARD
# =============================================================================

class CSVExporter(BaseExporter):
    """Export the first table of a report document to CSV."""

    format = 'csv'
    extension = 'csv'

    def render(self, doc: ReportDocument) -> bytes:
        table = find_first_table(doc)
        if table is None:
            raise NoTabularDataError(NO_TABLE_CSV_MESSAGE)
        return table_to_delimited(table, ',').encode('utf-8')


class JSONExporter(BaseExporter):
    """Export the whole report document as pretty-printed JSON."""

    format = 'json'
    extension = 'json'

    def render(self, doc: ReportDocument) -> bytes:
        return json.dumps(doc.to_dict(), indent=2, ensure_ascii=False).encode('utf-8')


def _default_clipboard() -> Callable[[str], None]:
    if not CLIPBOARD_AVAILABLE:
        raise ClipboardUnavailableError(
            "Clipboard API not available. Install with: pip install pyperclip")
    return pyperclip.copy


async def copy_for_sheets(doc: Optional[ReportDocument],
                          clipboard: Optional[Callable[[str], None]] = None) -> str:
    """
    Copy the first table of a report to the clipboard as tab-separated text.

    Args:
        doc: Report document to copy from
        clipboard: Callable that writes text to the clipboard; defaults to pyperclip

    Returns:
        A user-facing success message.

    Raises:
        DataNotReadyError: doc is None
        NoTabularDataError: the document has no table
        ClipboardUnavailableError: no clipboard backend, or the write failed
    """
    doc = _require_document(doc)
    table = find_first_table(doc)
    if table is None:
        raise NoTabularDataError(NO_TABLE_COPY_MESSAGE)

    payload = table_to_delimited(table, '\t')
    writer = clipboard or _default_clipboard()
    loop = asyncio.get_running_loop()
    try:
        await loop.run_in_executor(None, writer, payload)
    except ClipboardUnavailableError:
        raise
    except Exception as e:
        logger.warning("Clipboard write failed", reason=str(e))
        raise ClipboardUnavailableError(
            "Failed to copy data to clipboard. The system might have blocked the action.",
            reason=str(e)) from e

    logger.info("Table copied to clipboard", title=doc.title, bytes=len(payload))
    return COPY_SUCCESS_MESSAGE


# =============================================================================
# PUBLIC API
# =============================================================================

def export_to_pdf(doc: Optional[ReportDocument], **options) -> ExportResult:
    return PDFExporter(**options).export(doc)


def export_to_docx(doc: Optional[ReportDocument], **options) -> ExportResult:
    return DocxExporter(**options).export(doc)


def export_to_xlsx(doc: Optional[ReportDocument], **options) -> ExportResult:
    return ExcelExporter(**options).export(doc)


def export_to_csv(doc: Optional[ReportDocument], **options) -> ExportResult:
    return CSVExporter(**options).export(doc)


def export_to_json(doc: Optional[ReportDocument], **options) -> ExportResult:
    return JSONExporter(**options).export(doc)


# Factory function
def get_exporter(format_type: str, **options) -> BaseExporter:
    """Get appropriate exporter for format type."""
    exporters = {
        'pdf': PDFExporter,
        'docx': DocxExporter,
        'word': DocxExporter,
        'xlsx': ExcelExporter,
        'excel': ExcelExporter,
        'csv': CSVExporter,
        'json': JSONExporter,
    }

    exporter_class = exporters.get(format_type.lower())
    if not exporter_class:
        raise ValidationError(f"Unsupported export format: {format_type}", field='format')

    return exporter_class(**options)


def export_report(doc: Optional[ReportDocument], format_type: str, **options) -> ExportResult:
    """Export a document in the named format."""
    return get_exporter(format_type, **options).export(doc)


def write_export(result: ExportResult, directory: Union[str, Path]) -> Path:
    """
    Atomically write an export into a directory.

    The payload goes to a temporary file beside the target and is renamed
    into place, so the target is either the complete export or untouched.
    The temporary file is removed on every exit path.

    Raises:
        ValidationError: the result's filename would land outside directory
    """
    directory = Path(directory)
    target = directory / result.filename
    if not result.filename or target.resolve().parent != directory.resolve():
        raise ValidationError(f"Export filename escapes the target directory: {result.filename!r}",
                              field='filename')
    directory.mkdir(parents=True, exist_ok=True)

    fd, temp_path = tempfile.mkstemp(dir=directory, prefix='.', suffix='.part')
    try:
        with os.fdopen(fd, 'wb') as handle:
            handle.write(result.content)
        os.replace(temp_path, target)
    finally:
        if os.path.exists(temp_path):
            os.remove(temp_path)

    logger.info("Export written", path=str(target), bytes=result.size)
    return target


def get_export_capabilities() -> Dict[str, Any]:
    """Which export formats can run in this environment."""
    return {
        'pdf': PDF_AVAILABLE,
        'docx': DOCX_AVAILABLE,
        'xlsx': EXCEL_AVAILABLE,
        'csv': True,
        'json': True,
        'sheets': CLIPBOARD_AVAILABLE,
    }
