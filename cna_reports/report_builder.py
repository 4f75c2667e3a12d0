"""
Item-Level Report Builder
=========================
Turns per-question statistics (and optional narrative text produced by a
generative model) into a ReportDocument ready for any exporter.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from config_logging import get_logger, DataNotReadyError, ValidationError
from .constants import RATING_SCALE, SECTION_TITLES
from .item_stats import group_by_section, rank_by_average
from .models import (
    HeadingStyle, Orientation, QuestionStatistics, ReportDocument, ReportSection, TableBlock,
)

logger = get_logger('cna_reports.report_builder')

REPORT_TITLE = "Item-Level Questionnaire Analysis"
DEFAULT_INTRODUCTION = (
    "This report breaks down each survey question by response frequency to "
    "identify specific trends in capability across the organisation."
)
RANKING_HEADERS = ['Code', 'Question', 'Average']
DETAIL_HEADERS = ['Code', 'Question', 'Average', 'Mode', 'Responses', 'Variance']


@dataclass
class PriorityGap:
    """A question flagged as a priority development area."""
    question_code: str
    reason: str


@dataclass
class ItemAnalysisNarrative:
    """Narrative text for the item-level report, as returned by the generation API."""
    introduction: str
    visual_summary_commentary: str
    priority_gaps: List[PriorityGap] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> 'ItemAnalysisNarrative':
        if not isinstance(data, dict):
            raise ValidationError("Narrative must be a JSON object", field='narrative')
        for key in ('introduction', 'visualSummaryCommentary', 'priorityGaps'):
            if key not in data:
                raise ValidationError(f"Narrative missing '{key}'", field=key)
        if not isinstance(data['priorityGaps'], list):
            raise ValidationError("priorityGaps must be a list", field='priorityGaps')

        gaps = []
        for gap in data['priorityGaps']:
            if not isinstance(gap, dict) or 'questionCode' not in gap or 'reason' not in gap:
                raise ValidationError("Priority gap requires questionCode and reason",
                                      field='priorityGaps')
            gaps.append(PriorityGap(question_code=str(gap['questionCode']),
                                    reason=str(gap['reason'])))

        return cls(
            introduction=str(data['introduction']),
            visual_summary_commentary=str(data['visualSummaryCommentary']),
            priority_gaps=gaps,
        )


def _format_score(value) -> str:
    return f"{value:.2f}"


def _ranking_table(items: Sequence[QuestionStatistics]) -> TableBlock:
    return TableBlock(
        headers=list(RANKING_HEADERS),
        rows=[[q.question_code, q.question_text, _format_score(q.average_score)] for q in items],
    )


def _detail_table(items: Sequence[QuestionStatistics]) -> TableBlock:
    tally_keys = sorted(RATING_SCALE, reverse=True)
    rows = []
    for q in items:
        rows.append([
            q.question_code,
            q.question_text,
            _format_score(q.average_score),
            q.modal_score,
            f"{q.response_count}/{q.total_possible}",
            _format_score(q.variance),
        ] + [q.tally.get(k, 0) for k in tally_keys])
    return TableBlock(headers=DETAIL_HEADERS + [str(k) for k in tally_keys], rows=rows)


def _summary_section(stats: List[QuestionStatistics],
                     narrative: Optional[ItemAnalysisNarrative]) -> ReportSection:
    content = []
    if narrative and narrative.visual_summary_commentary:
        content.append(narrative.visual_summary_commentary)

    content.append("Top 5 Highest Rated Items")
    content.append(_ranking_table(rank_by_average(stats, limit=5)))
    content.append("Top 5 Lowest Rated Items")
    content.append(_ranking_table(rank_by_average(stats, limit=5, lowest=True)))

    if narrative and narrative.priority_gaps:
        text_by_code = {q.question_code: q.question_text for q in stats}
        lines = []
        for gap in narrative.priority_gaps:
            text = text_by_code.get(gap.question_code, 'N/A')
            lines.append(f"{gap.question_code} ({text}): {gap.reason}")
        content.append("Identified Priority Gaps\n" + "\n".join(lines))

    return ReportSection(
        title="Visual Summary & Priority Gaps",
        content=content,
        heading_style=HeadingStyle.GREEN,
    )


def build_item_analysis_report(stats: Sequence[QuestionStatistics],
                               narrative: Optional[ItemAnalysisNarrative] = None,
                               agency_name: Optional[str] = None) -> ReportDocument:
    """
    Build the item-level questionnaire analysis report.

    Args:
        stats: Output of aggregate() or aggregate_officers()
        narrative: Optional generated narrative; defaults are used when absent
        agency_name: Appended to the report title when given

    Raises:
        DataNotReadyError: stats is empty
    """
    stats = list(stats)
    if not stats:
        raise DataNotReadyError("No capability rating data found to analyze.")

    title = REPORT_TITLE if not agency_name else f"{REPORT_TITLE} - {agency_name}"
    introduction = narrative.introduction if narrative else DEFAULT_INTRODUCTION

    sections = [
        ReportSection(title="1. Introduction", content=[introduction]),
        _summary_section(stats, narrative),
    ]

    grouped = group_by_section(stats)
    for key in sorted(grouped):
        sections.append(ReportSection(
            title=f"Section {key}: {SECTION_TITLES.get(key, 'Analysis')}",
            content=[_detail_table(grouped[key])],
            orientation=Orientation.LANDSCAPE,
            heading_style=HeadingStyle.BLUE,
        ))

    logger.info("Item analysis report built", title=title, questions=len(stats),
                sections=len(sections))
    return ReportDocument(title=title, sections=sections)
