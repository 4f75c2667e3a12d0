"""
CNA Reports API Routes
======================
Flask Blueprint exposing item statistics and report export over HTTP.
"""

import io
import time
from functools import wraps

from flask import Blueprint, request, jsonify, send_file, current_app, g

from config_logging import (
    get_logger, CnaReportError, DataNotReadyError, NoTabularDataError, ValidationError,
)
from .constants import NO_TABLE_COPY_MESSAGE
from .export import (
    export_report, find_first_table, get_export_capabilities, table_to_delimited,
)
from .item_stats import aggregate, aggregate_officers, group_by_section
from .models import OfficerRecord, ReportDocument, SurveyResponse
from .report_builder import ItemAnalysisNarrative, build_item_analysis_report

logger = get_logger('cna_reports.routes')

reports_blueprint = Blueprint('cna_reports', __name__)


def _error_response(code: str, message: str, status: int):
    return jsonify({
        'success': False,
        'error': {
            'code': code,
            'message': message,
            'correlation_id': getattr(g, 'correlation_id', 'unknown')
        }
    }), status


def handle_report_errors(f):
    """Decorator for standardized API error handling in report routes."""
    @wraps(f)
    def decorated(*args, **kwargs):
        start_time = time.time()
        try:
            result = f(*args, **kwargs)

            elapsed = time.time() - start_time
            if elapsed > 5.0:
                logger.warning(f"Slow reports API call: {f.__name__} took {elapsed:.1f}s")

            return result

        except CnaReportError as e:
            if e.status_code >= 500:
                logger.error(f"{e.code} in {f.__name__}: {e.message}")
            else:
                logger.warning(f"{e.code} in {f.__name__}: {e.message}")
            return _error_response(e.code, e.message, e.status_code)
        except Exception as e:
            logger.exception(f"Unexpected error in {f.__name__}: {e}")
            return _error_response('INTERNAL_ERROR', 'An unexpected error occurred', 500)
    return decorated


def _require_json_object() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        raise DataNotReadyError()
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


@reports_blueprint.route('/item-analysis', methods=['POST'])
@handle_report_errors
def item_analysis():
    """
    Aggregate capability ratings per question.

    Body is either {"officers": [...]} or {"responses": [...], "officer_count": n}.
    Optional "narrative" and "include_report" build the full report document.
    """
    data = _require_json_object()

    if 'officers' in data:
        officers = [OfficerRecord.from_dict(o) for o in data['officers']]
        stats = aggregate_officers(officers)
        officer_count = len(officers)
    elif 'responses' in data:
        responses = [SurveyResponse.from_dict(r) for r in data['responses']]
        officer_count = data.get('officer_count')
        stats = aggregate(responses, officer_count)
    else:
        raise ValidationError("Provide either 'officers' or 'responses'", field='officers')

    grouped = group_by_section(stats)
    payload = {
        'officer_count': officer_count,
        'questions': [q.to_dict() for q in stats],
        'sections': {key: [q.question_code for q in items] for key, items in grouped.items()},
    }

    if data.get('include_report') or data.get('narrative'):
        narrative = None
        if data.get('narrative'):
            narrative = ItemAnalysisNarrative.from_dict(data['narrative'])
        report = build_item_analysis_report(stats, narrative, data.get('agency_name'))
        payload['report'] = report.to_dict()

    return jsonify({'success': True, 'data': payload})


@reports_blueprint.route('/export/sheets', methods=['POST'])
@handle_report_errors
def export_sheets():
    """Return the first table as tab-separated text for the client to copy."""
    doc = ReportDocument.from_dict(_require_json_object())
    table = find_first_table(doc)
    if table is None:
        raise NoTabularDataError(NO_TABLE_COPY_MESSAGE)
    return jsonify({
        'success': True,
        'data': {'tsv': table_to_delimited(table, '\t')}
    })


@reports_blueprint.route('/export/<fmt>', methods=['POST'])
@handle_report_errors
def export_document(fmt):
    """Render the posted report document and return it as an attachment."""
    doc = ReportDocument.from_dict(_require_json_object())
    result = export_report(doc, fmt, org_name=current_app.config.get('CNA_ORG_NAME'))
    return send_file(
        io.BytesIO(result.content),
        mimetype=result.mime_type,
        as_attachment=True,
        download_name=result.filename
    )


@reports_blueprint.route('/capabilities', methods=['GET'])
@handle_report_errors
def capabilities():
    return jsonify({'success': True, 'data': get_export_capabilities()})
