"""Shared fixtures for the CNA reports tests."""

from datetime import date

import pytest

from cna_reports.models import (
    HeadingStyle, ImageBlock, Orientation, ReportDocument, ReportSection, SurveyResponse,
    TableBlock,
)

# 1x1 transparent PNG
PNG_DATA_URL = (
    "data:image/png;base64,"
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)

FIXED_DATE = date(2026, 10, 19)


@pytest.fixture
def fixed_date() -> date:
    return FIXED_DATE


@pytest.fixture
def png_data_url() -> str:
    return PNG_DATA_URL


@pytest.fixture
def sample_responses():
    """Two officers answering A1, A2 and B1."""
    return [
        SurveyResponse('A1', 7, 'Officer 1'),
        SurveyResponse('A1', 9, 'Officer 2'),
        SurveyResponse('A2', 5, 'Officer 1'),
        SurveyResponse('B1', 8, 'Officer 2'),
    ]


@pytest.fixture
def sample_document() -> ReportDocument:
    """Report with text, two tables, and a landscape section."""
    return ReportDocument(
        title="Capability Summary",
        sections=[
            ReportSection(
                title="Introduction",
                content=["This report summarises the survey.\nSecond paragraph."],
            ),
            ReportSection(
                title="Results",
                content=[
                    "Per-question averages.",
                    TableBlock(headers=['Code', 'Note'], rows=[['A1', 'y,z'], ['A2', 'say "hi"']]),
                    TableBlock(headers=['Grade', 'Count'], rows=[['G10', 3], ['G12', None]]),
                ],
                orientation=Orientation.LANDSCAPE,
                heading_style=HeadingStyle.BLUE,
            ),
            ReportSection(
                title="Chart",
                content=[ImageBlock(data_url=PNG_DATA_URL, width=1, height=1)],
                heading_style=HeadingStyle.GREEN,
            ),
        ],
    )


@pytest.fixture
def text_only_document() -> ReportDocument:
    return ReportDocument(
        title="Narrative Only",
        sections=[ReportSection(title="Overview", content=["No tables here."])],
    )
