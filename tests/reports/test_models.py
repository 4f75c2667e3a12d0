"""
Tests for CNA Reports Models
============================
"""

import pytest

from config_logging import ValidationError
from cna_reports.models import (
    HeadingStyle, ImageBlock, OfficerRecord, Orientation, QuestionStatistics, ReportDocument,
    ReportSection, SurveyResponse, TableBlock,
)


class TestReportDocument:
    """Tests for the report document wire form."""

    def test_round_trip(self, sample_document):
        assert ReportDocument.from_dict(sample_document.to_dict()) == sample_document

    def test_section_defaults(self):
        doc = ReportDocument.from_dict({'title': 'T', 'sections': [{'title': 'S'}]})
        section = doc.sections[0]
        assert section.orientation is Orientation.PORTRAIT
        assert section.heading_style is None
        assert section.content == []

    def test_wire_keys(self, sample_document):
        data = sample_document.to_dict()
        results = data['sections'][1]
        assert results['orientation'] == 'landscape'
        assert results['headingStyle'] == 'Blue'
        assert results['content'][1]['type'] == 'table'
        assert data['sections'][2]['content'][0]['type'] == 'image'
        assert 'dataUrl' in data['sections'][2]['content'][0]
        assert 'headingStyle' not in data['sections'][0]

    def test_iter_tables_order(self, sample_document):
        headers = [table.headers[0] for _section, table in sample_document.iter_tables()]
        assert headers == ['Code', 'Grade']

    def test_missing_title(self):
        with pytest.raises(ValidationError):
            ReportDocument.from_dict({'sections': []})

    def test_unknown_block_type(self):
        with pytest.raises(ValidationError):
            ReportDocument.from_dict({'title': 'T', 'sections': [
                {'title': 'S', 'content': [{'type': 'video'}]}]})

    def test_bad_orientation(self):
        with pytest.raises(ValidationError):
            ReportDocument.from_dict({'title': 'T', 'sections': [
                {'title': 'S', 'orientation': 'sideways'}]})

    def test_image_requires_size(self):
        with pytest.raises(ValidationError):
            ReportDocument.from_dict({'title': 'T', 'sections': [
                {'title': 'S', 'content': [{'type': 'image', 'dataUrl': 'data:,'}]}]})


class TestReportSection:

    def test_tables_property(self):
        table = TableBlock(headers=['a'], rows=[])
        section = ReportSection(title='S', content=['text', table,
                                                    ImageBlock('data:,', 1, 1)])
        assert section.tables == [table]

    def test_heading_style_parsed(self):
        section = ReportSection.from_dict({'title': 'S', 'headingStyle': 'Green'})
        assert section.heading_style is HeadingStyle.GREEN


class TestSurveyData:

    def test_survey_response_from_dict(self):
        response = SurveyResponse.from_dict({'questionCode': 'A1', 'currentScore': 6})
        assert response == SurveyResponse('A1', 6)

    def test_survey_response_requires_score(self):
        with pytest.raises(ValidationError):
            SurveyResponse.from_dict({'questionCode': 'A1'})

    @pytest.mark.parametrize('payload', ['x', 3, None, ['A1', 5]])
    def test_survey_response_requires_object(self, payload):
        with pytest.raises(ValidationError):
            SurveyResponse.from_dict(payload)

    @pytest.mark.parametrize('payload', [
        'x',
        {'name': 'Ana', 'capabilityRatings': 'A1'},
        {'name': 'Ana', 'capabilityRatings': ['A1']},
    ])
    def test_officer_record_rejects_malformed(self, payload):
        with pytest.raises(ValidationError):
            OfficerRecord.from_dict(payload)

    def test_statistics_to_dict(self):
        stats = QuestionStatistics('A1', 'text', 0, 0, 0, 1, 0, {1: 0})
        data = stats.to_dict()
        assert data['tally'] == {'1': 0}
        assert stats.response_rate == 0.0
