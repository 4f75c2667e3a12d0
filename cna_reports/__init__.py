"""
CNA Reports
===========
Item-level statistics and multi-format report export for Capability Needs
Analysis surveys.

Usage:
    from cna_reports import aggregate, build_item_analysis_report, export_to_pdf

    stats = aggregate(responses, officer_count=12)
    doc = build_item_analysis_report(stats)
    result = export_to_pdf(doc)
"""

from config_logging import VERSION as __version__

from .models import (
    ExportResult, HeadingStyle, ImageBlock, OfficerRecord, Orientation,
    QuestionStatistics, ReportDocument, ReportSection, SurveyResponse, TableBlock,
)
from .item_stats import (
    aggregate, aggregate_officers, group_by_section, question_code_sort_key, rank_by_average,
)
from .export import (
    copy_for_sheets, create_file_name, export_report, export_to_csv, export_to_docx,
    export_to_json, export_to_pdf, export_to_xlsx, find_first_table,
    get_export_capabilities, write_export,
)
from .report_builder import ItemAnalysisNarrative, PriorityGap, build_item_analysis_report

__all__ = [
    'ExportResult', 'HeadingStyle', 'ImageBlock', 'OfficerRecord', 'Orientation',
    'QuestionStatistics', 'ReportDocument', 'ReportSection', 'SurveyResponse', 'TableBlock',
    'aggregate', 'aggregate_officers', 'group_by_section', 'question_code_sort_key',
    'rank_by_average',
    'copy_for_sheets', 'create_file_name', 'export_report', 'export_to_csv',
    'export_to_docx', 'export_to_json', 'export_to_pdf', 'export_to_xlsx',
    'find_first_table', 'get_export_capabilities', 'write_export',
    'ItemAnalysisNarrative', 'PriorityGap', 'build_item_analysis_report',
]
