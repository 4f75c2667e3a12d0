"""
CNA Reports Models
==================
Data classes for survey responses, item statistics, and the generic report
document consumed by the exporters.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from numbers import Number
from typing import Any, Dict, List, Optional, Union

from config_logging import ValidationError, handle_errors


class Orientation(Enum):
    """Page orientation for page-oriented formats."""
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"


class HeadingStyle(Enum):
    """Accent colour hint for section headings."""
    BLUE = "Blue"
    GREEN = "Green"


# =============================================================================
# SURVEY DATA
# =============================================================================

@dataclass(frozen=True)
class SurveyResponse:
    """
    One officer's rating for one CNA question.

    Attributes:
        question_code: Item code such as "A1"; first character is the section
        current_score: Self-assessed rating, 1-10 by convention
        officer_id: Optional identifier of the responding officer
    """
    question_code: str
    current_score: Union[int, float]
    officer_id: str = ""

    def to_dict(self) -> dict:
        return {
            'questionCode': self.question_code,
            'currentScore': self.current_score,
            'officerId': self.officer_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'SurveyResponse':
        if not isinstance(data, dict) or 'questionCode' not in data or 'currentScore' not in data:
            raise ValidationError("Survey response requires questionCode and currentScore",
                                  field='questionCode')
        return cls(
            question_code=str(data['questionCode']),
            current_score=data['currentScore'],
            officer_id=str(data.get('officerId', '') or ''),
        )


@dataclass
class OfficerRecord:
    """An officer and the capability ratings they submitted."""
    name: str = ""
    position: str = ""
    division: str = ""
    grade: str = ""
    capability_ratings: List[SurveyResponse] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> 'OfficerRecord':
        if not isinstance(data, dict):
            raise ValidationError("Officer record must be a JSON object", field='officers')
        ratings_data = data.get('capabilityRatings', [])
        if not isinstance(ratings_data, list):
            raise ValidationError("capabilityRatings must be a list", field='capabilityRatings')

        name = str(data.get('name', ''))
        ratings = []
        for r in ratings_data:
            if not isinstance(r, dict):
                raise ValidationError("Capability rating must be a JSON object",
                                      field='capabilityRatings')
            ratings.append(SurveyResponse.from_dict({'officerId': name, **r}))
        return cls(
            name=name,
            position=str(data.get('position', '')),
            division=str(data.get('division', '')),
            grade=str(data.get('grade', '')),
            capability_ratings=ratings,
        )


@dataclass
class QuestionStatistics:
    """
    Descriptive statistics for one question code.

    Attributes:
        question_code: Unique key
        question_text: Resolved statement text, or a fallback label
        response_count: Number of responses seen for this code
        total_possible: Number of officers considered
        average_score: Arithmetic mean, 0 when there are no responses
        modal_score: Most frequent score (first maximum in tally order)
        variance: Population variance, 0 when there are no responses
        tally: Score value -> count, pre-seeded 1..10
    """
    question_code: str
    question_text: str
    response_count: int
    total_possible: int
    average_score: float
    modal_score: Union[int, float]
    variance: float
    tally: Dict[Union[int, float], int] = field(default_factory=dict)

    @property
    def section_key(self) -> str:
        return self.question_code[:1]

    @property
    def response_rate(self) -> float:
        if self.total_possible == 0:
            return 0.0
        return self.response_count / self.total_possible

    @property
    def standard_deviation(self) -> float:
        return math.sqrt(self.variance)

    def to_dict(self) -> dict:
        return {
            'questionCode': self.question_code,
            'questionText': self.question_text,
            'responseCount': self.response_count,
            'totalPossible': self.total_possible,
            'averageScore': self.average_score,
            'modalScore': self.modal_score,
            'variance': self.variance,
            'tally': {str(k): v for k, v in self.tally.items()},
        }


# =============================================================================
# REPORT DOCUMENT
# =============================================================================

@dataclass
class TableBlock:
    """Tabular content: ordered headers plus rows of string/number cells."""
    headers: List[str]
    rows: List[List[Any]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {'type': 'table', 'headers': list(self.headers),
                'rows': [list(r) for r in self.rows]}


@dataclass
class ImageBlock:
    """A pre-rendered raster image carried as a data URI."""
    data_url: str
    width: float
    height: float

    def to_dict(self) -> dict:
        return {'type': 'image', 'dataUrl': self.data_url,
                'width': self.width, 'height': self.height}


ContentBlock = Union[str, TableBlock, ImageBlock]


def _block_to_dict(block: ContentBlock) -> Any:
    if isinstance(block, str):
        return block
    return block.to_dict()


def _block_from_dict(data: Any) -> ContentBlock:
    if isinstance(data, str):
        return data
    if not isinstance(data, dict):
        raise ValidationError(f"Unsupported content block: {type(data).__name__}", field='content')

    block_type = data.get('type')
    if block_type == 'table':
        rows = data.get('rows', [])
        if not isinstance(data.get('headers'), list) or not isinstance(rows, list):
            raise ValidationError("Table block requires headers and rows lists", field='headers')
        return TableBlock(headers=[str(h) for h in data['headers']],
                          rows=[list(r) for r in rows])
    if block_type == 'image':
        for key in ('dataUrl', 'width', 'height'):
            if key not in data:
                raise ValidationError(f"Image block missing '{key}'", field=key)
        if not isinstance(data['width'], Number) or not isinstance(data['height'], Number):
            raise ValidationError("Image width and height must be numbers", field='width')
        return ImageBlock(data_url=data['dataUrl'], width=data['width'], height=data['height'])

    raise ValidationError(f"Unknown content block type: {block_type!r}", field='type')


@dataclass
class ReportSection:
    """
    One titled division of a report.

    Attributes:
        title: Section heading
        content: Ordered text, table, and image blocks
        orientation: Page orientation from this section onward
        heading_style: Optional accent colour for the heading
    """
    title: str
    content: List[ContentBlock] = field(default_factory=list)
    orientation: Orientation = Orientation.PORTRAIT
    heading_style: Optional[HeadingStyle] = None

    @property
    def tables(self) -> List[TableBlock]:
        return [b for b in self.content if isinstance(b, TableBlock)]

    def to_dict(self) -> dict:
        data = {
            'title': self.title,
            'content': [_block_to_dict(b) for b in self.content],
            'orientation': self.orientation.value,
        }
        if self.heading_style is not None:
            data['headingStyle'] = self.heading_style.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'ReportSection':
        if 'title' not in data:
            raise ValidationError("Report section requires a title", field='title')
        return cls(
            title=str(data['title']),
            content=[_block_from_dict(b) for b in data.get('content', [])],
            orientation=Orientation(data.get('orientation') or Orientation.PORTRAIT.value),
            heading_style=HeadingStyle(data['headingStyle']) if data.get('headingStyle') else None,
        )


@dataclass
class ReportDocument:
    """A renderable report: title plus ordered sections."""
    title: str
    sections: List[ReportSection] = field(default_factory=list)

    def iter_tables(self):
        for section in self.sections:
            for block in section.content:
                if isinstance(block, TableBlock):
                    yield section, block

    def to_dict(self) -> dict:
        return {
            'title': self.title,
            'sections': [s.to_dict() for s in self.sections],
        }

    @classmethod
    @handle_errors()
    def from_dict(cls, data: dict) -> 'ReportDocument':
        """Parse the JSON wire form; malformed payloads raise ValidationError."""
        if not isinstance(data, dict) or 'title' not in data:
            raise ValidationError("Report document requires a title", field='title')
        return cls(
            title=str(data['title']),
            sections=[ReportSection.from_dict(s) for s in data.get('sections', [])],
        )


@dataclass
class ExportResult:
    """A fully-formed export payload and its suggested filename."""
    filename: str
    content: bytes
    mime_type: str
    format: str

    @property
    def size(self) -> int:
        return len(self.content)
