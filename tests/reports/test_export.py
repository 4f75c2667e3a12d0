"""
Tests for the Report Export Engine
==================================
Rendered files are read back with pypdf, python-docx and openpyxl.
"""

import base64
import csv
import io
import json
import os

import pytest

from config_logging import DataNotReadyError, NoTabularDataError, ValidationError
from cna_reports.constants import (
    DOCX_IMAGE_ERROR_TEXT, NO_TABLE_SHEET_MESSAGE, PDF_IMAGE_ERROR_TEXT, XLSX_EMPTY_SHEET,
    XLSX_SUMMARY_SHEET,
)
from cna_reports.export import (
    create_file_name, export_report, export_to_csv, export_to_docx, export_to_json,
    export_to_pdf, export_to_xlsx, find_first_table, format_generated_date,
    get_export_capabilities, sanitize_sheet_name, write_export,
)
from cna_reports.models import (
    ExportResult, ImageBlock, Orientation, ReportDocument, ReportSection, TableBlock,
)


def _section(title, orientation=Orientation.PORTRAIT, content=None):
    return ReportSection(title=title, content=content or [f"Body of {title}."],
                         orientation=orientation)


class TestFileNames:

    def test_slug_and_date(self, fixed_date):
        assert create_file_name("CNA  Summary Report", "pdf", fixed_date) == \
            "cna-summary-report-report-2026-10-19.pdf"

    def test_path_components_removed(self, fixed_date):
        assert create_file_name("../../escaped", "json", fixed_date) == \
            "escaped-report-2026-10-19.json"
        assert "/" not in create_file_name("Q1/Q2 Results", "csv", fixed_date)

    def test_empty_title(self, fixed_date):
        assert create_file_name("..", "pdf", fixed_date) == "untitled-report-2026-10-19.pdf"

    def test_generated_date_format(self, fixed_date):
        assert format_generated_date(fixed_date) == "October 19, 2026"

    def test_all_formats_share_stem(self, sample_document, fixed_date):
        names = [
            export_to_pdf(sample_document, generated=fixed_date).filename,
            export_to_docx(sample_document, generated=fixed_date).filename,
            export_to_xlsx(sample_document, generated=fixed_date).filename,
            export_to_csv(sample_document, generated=fixed_date).filename,
            export_to_json(sample_document, generated=fixed_date).filename,
        ]
        stems = {os.path.splitext(name)[0] for name in names}
        assert stems == {"capability-summary-report-2026-10-19"}


class TestDataNotReady:

    @pytest.mark.parametrize('exporter', [
        export_to_pdf, export_to_docx, export_to_xlsx, export_to_csv, export_to_json,
    ])
    def test_none_document(self, exporter):
        with pytest.raises(DataNotReadyError):
            exporter(None)


class TestPDFExport:
    """Tests for PDF export."""

    def _pages(self, result):
        from pypdf import PdfReader
        return PdfReader(io.BytesIO(result.content)).pages

    def test_orientation_transitions(self):
        doc = ReportDocument(title="Orientation", sections=[
            _section("One"),
            _section("Two", Orientation.LANDSCAPE),
            _section("Three", Orientation.LANDSCAPE),
            _section("Four"),
        ])
        pages = self._pages(export_to_pdf(doc))
        landscape = [float(p.mediabox.width) > float(p.mediabox.height) for p in pages]
        assert landscape == [False, True, False]

    def test_starts_landscape(self):
        doc = ReportDocument(title="Wide", sections=[_section("Only", Orientation.LANDSCAPE)])
        (page,) = self._pages(export_to_pdf(doc))
        assert float(page.mediabox.width) > float(page.mediabox.height)

    def test_header_and_footer(self, sample_document, fixed_date):
        result = export_to_pdf(sample_document, generated=fixed_date, org_name="Test Agency")
        pages = self._pages(result)
        text = pages[0].extract_text()
        assert "Capability Summary" in text
        assert "Test Agency - Generated on October 19, 2026" in text
        assert f"Page 1 of {len(pages)}" in text
        assert result.mime_type == 'application/pdf'
        assert result.content.startswith(b'%PDF')

    def test_table_spans_pages(self):
        table = TableBlock(headers=['Row', 'Value'], rows=[[i, f"v{i}"] for i in range(200)])
        doc = ReportDocument(title="Long", sections=[_section("Data", content=[table])])
        pages = self._pages(export_to_pdf(doc))
        assert len(pages) > 1
        assert "Row" in pages[1].extract_text()

    def test_bad_image_gets_placeholder(self):
        doc = ReportDocument(title="Charts", sections=[
            _section("Chart", content=[ImageBlock("data:image/png;base64,AAAA", 100, 50)]),
        ])
        pages = self._pages(export_to_pdf(doc))
        assert PDF_IMAGE_ERROR_TEXT in pages[0].extract_text()

    def test_truncated_image_gets_placeholder(self, png_data_url):
        """Header decodes but pixel data is cut short."""
        raw = base64.b64decode(png_data_url.split(',', 1)[1])
        truncated = "data:image/png;base64," + base64.b64encode(raw[:45]).decode('ascii')
        doc = ReportDocument(title="Charts", sections=[
            _section("Chart", content=[ImageBlock(truncated, 200, 200), "Text after the chart."]),
        ])
        text = self._pages(export_to_pdf(doc))[0].extract_text()
        assert PDF_IMAGE_ERROR_TEXT in text
        assert "Text after the chart." in text

    def test_valid_image(self, sample_document):
        pages = self._pages(export_to_pdf(sample_document))
        text = "".join(p.extract_text() for p in pages)
        assert PDF_IMAGE_ERROR_TEXT not in text

    def test_empty_document(self):
        pages = self._pages(export_to_pdf(ReportDocument(title="Empty")))
        assert len(pages) == 1


class TestDocxExport:
    """Tests for Word export."""

    def _open(self, result):
        from docx import Document
        return Document(io.BytesIO(result.content))

    def test_one_section_per_report_section(self):
        from docx.enum.section import WD_ORIENT
        doc = ReportDocument(title="Orientation", sections=[
            _section("One"),
            _section("Two", Orientation.LANDSCAPE),
            _section("Three"),
        ])
        sections = self._open(export_to_docx(doc)).sections
        assert [s.orientation for s in sections] == [
            WD_ORIENT.PORTRAIT, WD_ORIENT.LANDSCAPE, WD_ORIENT.PORTRAIT]
        assert sections[1].page_width > sections[1].page_height
        assert sections[2].page_width < sections[2].page_height

    def test_header_on_every_section(self, sample_document):
        document = self._open(export_to_docx(sample_document, org_name="Test Agency"))
        for section in document.sections:
            header_text = section.header.paragraphs[0].text
            assert "Capability Summary" in header_text
            assert "Test Agency" in header_text

    def test_tables(self, sample_document):
        from docx.oxml.ns import qn
        document = self._open(export_to_docx(sample_document))
        assert len(document.tables) == 2
        first = document.tables[0]
        assert [c.text for c in first.rows[0].cells] == ['Code', 'Note']
        assert first.rows[1].cells[1].text == 'y,z'
        assert first.rows[0]._tr.trPr.find(qn('w:tblHeader')) is not None
        assert document.tables[1].rows[2].cells[1].text == ''

    def test_image_scaled(self, sample_document):
        document = self._open(export_to_docx(sample_document))
        (shape,) = document.inline_shapes
        assert shape.width == int(1 * 2.5 * 9525)

    def test_bad_image_placeholder(self):
        doc = ReportDocument(title="Charts", sections=[
            _section("Chart", content=[ImageBlock("not-a-data-url", 10, 10)]),
        ])
        document = self._open(export_to_docx(doc))
        assert any(DOCX_IMAGE_ERROR_TEXT.strip() in p.text for p in document.paragraphs)

    def test_headings(self, sample_document):
        document = self._open(export_to_docx(sample_document))
        texts = [p.text for p in document.paragraphs]
        for section in sample_document.sections:
            assert section.title in texts

    def test_title_precedes_first_heading(self, sample_document):
        document = self._open(export_to_docx(sample_document))
        paragraphs = document.paragraphs
        texts = [p.text for p in paragraphs]
        title_index = texts.index("Capability Summary")
        heading_index = texts.index("Introduction")

        assert paragraphs[title_index].style.name == 'Title'
        assert texts[title_index + 1] == ''
        assert title_index + 2 == heading_index

    def test_blank_line_becomes_empty_paragraph(self):
        doc = ReportDocument(title="Lines", sections=[
            _section("Body", content=["First line.\n\nThird line."]),
        ])
        texts = [p.text for p in self._open(export_to_docx(doc)).paragraphs]
        start = texts.index("First line.")
        assert texts[start:start + 3] == ["First line.", "", "Third line."]


class TestExcelExport:
    """Tests for Excel export."""

    def _open(self, result):
        from openpyxl import load_workbook
        return load_workbook(io.BytesIO(result.content))

    def test_sheet_per_table_and_summary_first(self, sample_document):
        wb = self._open(export_to_xlsx(sample_document))
        assert wb.sheetnames == [XLSX_SUMMARY_SHEET, 'Results', 'Results-Table2']

        results = wb['Results']
        assert [c.value for c in results[1]] == ['Code', 'Note']
        assert results['B2'].value == 'y,z'
        assert wb['Results-Table2']['B2'].value == 3

    def test_summary_contents(self, sample_document, fixed_date):
        wb = self._open(export_to_xlsx(sample_document, generated=fixed_date))
        values = [row[0] for row in wb[XLSX_SUMMARY_SHEET].iter_rows(values_only=True)]
        assert values[0] == "Capability Summary"
        assert values[1] == "Generated on October 19, 2026"
        assert "Introduction" in values
        assert "  This report summarises the survey." in values
        assert "  Second paragraph." in values
        assert values.index("Introduction") < values.index("Results") < values.index("Chart")

    def test_no_tables(self, text_only_document):
        wb = self._open(export_to_xlsx(text_only_document))
        assert wb.sheetnames == [XLSX_SUMMARY_SHEET, XLSX_EMPTY_SHEET]
        assert wb[XLSX_EMPTY_SHEET]['A1'].value == NO_TABLE_SHEET_MESSAGE

    def test_duplicate_and_invalid_sheet_titles(self):
        table = TableBlock(headers=['h'], rows=[['v']])
        doc = ReportDocument(title="Names", sections=[
            ReportSection(title="Data", content=[table]),
            ReportSection(title="data", content=[table]),
            ReportSection(title="Q1/Q2: Results", content=[table]),
            ReportSection(title="[]", content=[table]),
        ])
        wb = self._open(export_to_xlsx(doc))
        assert wb.sheetnames == [XLSX_SUMMARY_SHEET, 'Data', 'Sheet 1', 'Q1Q2 Results', 'Sheet 2']

    def test_sanitize_truncates(self):
        assert len(sanitize_sheet_name("x" * 50)) == 31

    def test_leading_equals_stored_as_text(self):
        doc = ReportDocument(title="=HYPERLINK(\"x\")", sections=[ReportSection(
            title="S", content=["=cmd|' /C calc'!A0",
                                TableBlock(headers=['=h'], rows=[['=1+1', 2]])])])
        wb = self._open(export_to_xlsx(doc))

        table = wb['S']
        assert table['A1'].data_type == 's'
        assert table['A2'].data_type == 's'
        assert table['A2'].value == '=1+1'
        assert table['B2'].value == 2

        summary = wb[XLSX_SUMMARY_SHEET]
        assert summary['A1'].data_type == 's'
        assert summary['A1'].value == '=HYPERLINK("x")'


class TestCSVExport:
    """Tests for CSV export."""

    def test_first_table_quoted(self, sample_document):
        result = export_to_csv(sample_document)
        text = result.content.decode('utf-8')
        assert text.splitlines()[0] == '"Code","Note"'
        assert '"say ""hi"""' in text
        assert list(csv.reader(io.StringIO(text))) == [
            ['Code', 'Note'], ['A1', 'y,z'], ['A2', 'say "hi"']]

    def test_none_cells_empty(self):
        doc = ReportDocument(title="T", sections=[ReportSection(
            title="S", content=[TableBlock(headers=['a', 'b'], rows=[[1, None]])])])
        assert export_to_csv(doc).content.decode('utf-8') == '"a","b"\n"1",""\n'

    def test_no_table(self, text_only_document):
        with pytest.raises(NoTabularDataError):
            export_to_csv(text_only_document)

    def test_find_first_table(self, sample_document):
        assert find_first_table(sample_document).headers == ['Code', 'Note']


class TestJSONExport:

    def test_round_trip(self, sample_document):
        result = export_to_json(sample_document)
        data = json.loads(result.content.decode('utf-8'))
        assert ReportDocument.from_dict(data) == sample_document
        assert result.content.decode('utf-8').startswith('{\n  "title"')


class TestDispatch:

    def test_aliases(self, sample_document):
        assert export_report(sample_document, 'excel').format == 'xlsx'
        assert export_report(sample_document, 'Word').format == 'docx'

    def test_unknown_format(self, sample_document):
        with pytest.raises(ValidationError):
            export_report(sample_document, 'rtf')

    def test_capabilities(self):
        capabilities = get_export_capabilities()
        assert capabilities['csv'] is True
        assert capabilities['json'] is True
        assert set(capabilities) == {'pdf', 'docx', 'xlsx', 'csv', 'json', 'sheets'}


class TestWriteExport:

    def test_writes_file(self, tmp_path, sample_document):
        result = export_to_json(sample_document)
        target = write_export(result, tmp_path / 'out')
        assert target.read_bytes() == result.content
        assert target.name == result.filename
        assert [p.name for p in target.parent.iterdir()] == [result.filename]

    def test_failed_rename_leaves_nothing(self, tmp_path, sample_document, monkeypatch):
        def broken_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, 'replace', broken_replace)
        with pytest.raises(OSError):
            write_export(export_to_json(sample_document), tmp_path)
        assert list(tmp_path.iterdir()) == []

    def test_traversal_title_stays_in_directory(self, tmp_path):
        exports = tmp_path / 'exports'
        result = export_to_json(ReportDocument(title="../../escaped"))
        target = write_export(result, exports)
        assert target.parent == exports
        assert target.exists()
        assert list(tmp_path.iterdir()) == [exports]

    def test_rejects_filename_outside_directory(self, tmp_path):
        result = ExportResult(filename="../outside.json", content=b"{}",
                              mime_type='application/json', format='json')
        with pytest.raises(ValidationError):
            write_export(result, tmp_path / 'exports')
        assert not (tmp_path / 'outside.json').exists()
