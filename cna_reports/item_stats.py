"""
Item Statistics Aggregator
==========================
Per-question descriptive statistics over CNA survey responses:
response count, mean, population variance, modal score, and the full
rating tally, plus grouping of the results by section prefix.
"""

import re
from collections import OrderedDict
from numbers import Number
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from config_logging import get_logger, InvalidArgumentError
from .constants import QUESTION_TEXT_MAPPING, RATING_SCALE, UNKNOWN_QUESTION_TEMPLATE
from .models import OfficerRecord, QuestionStatistics, SurveyResponse

logger = get_logger('cna_reports.item_stats')

_TRAILING_DIGITS = re.compile(r'^(.*?)(\d+)$')


def _validate_officer_count(officer_count) -> None:
    if isinstance(officer_count, bool) or not isinstance(officer_count, int):
        raise InvalidArgumentError(
            f"officer_count must be an integer, got {type(officer_count).__name__}",
            field='officer_count')
    if officer_count < 0:
        raise InvalidArgumentError(
            f"officer_count must not be negative, got {officer_count}",
            field='officer_count')


def _collect_scores(responses: Iterable[SurveyResponse]) -> Dict[str, List[Number]]:
    """Group scores by question code, preserving first-encounter order."""
    scores_by_code: Dict[str, List[Number]] = OrderedDict()
    for response in responses:
        score = response.current_score
        if isinstance(score, bool) or not isinstance(score, Number):
            raise InvalidArgumentError(
                f"Score for {response.question_code!r} is not numeric: {score!r}",
                field='current_score')
        scores_by_code.setdefault(response.question_code, []).append(score)
    return scores_by_code


def build_tally(scores: Sequence[Number]) -> Dict[Number, int]:
    """Count each score; keys 1..10 always present, others added as seen."""
    tally: Dict[Number, int] = {value: 0 for value in RATING_SCALE}
    for score in scores:
        tally[score] = tally.get(score, 0) + 1
    return tally


def modal_score(tally: Mapping[Number, int]) -> Number:
    """
    Return the tally key with the highest count.

    Entries are scanned in insertion order (1..10, then extra keys in the
    order first seen); a later entry only wins with a strictly greater count.
    """
    items = iter(tally.items())
    best_value, best_count = next(items)
    for value, count in items:
        if count > best_count:
            best_value, best_count = value, count
    return best_value


def summarize_scores(question_code: str, scores: Sequence[Number], officer_count: int,
                     question_text: str) -> QuestionStatistics:
    """Compute the statistics block for one question code."""
    response_count = len(scores)
    if response_count:
        average = sum(scores) / response_count
        variance = sum((score - average) ** 2 for score in scores) / response_count
    else:
        average = 0
        variance = 0

    tally = build_tally(scores)
    return QuestionStatistics(
        question_code=question_code,
        question_text=question_text,
        response_count=response_count,
        total_possible=officer_count,
        average_score=average,
        modal_score=modal_score(tally),
        variance=variance,
        tally=tally,
    )


def aggregate(responses: Iterable[SurveyResponse], officer_count: int,
              code_to_text: Optional[Mapping[str, str]] = None) -> List[QuestionStatistics]:
    """
    Summarize survey responses per distinct question code.

    Args:
        responses: Survey responses in any order
        officer_count: Number of officers considered (denominator for response rates)
        code_to_text: Question code -> statement text. Defaults to the CNA
            question mapping; codes missing from it get a fallback label.

    Returns:
        One QuestionStatistics per code, in first-encounter order.

    Raises:
        InvalidArgumentError: officer_count is negative or not an integer, or a
            score is not numeric.
    """
    _validate_officer_count(officer_count)
    lookup = QUESTION_TEXT_MAPPING if code_to_text is None else code_to_text

    stats = []
    for code, scores in _collect_scores(responses).items():
        text = lookup.get(code) or UNKNOWN_QUESTION_TEMPLATE.format(code=code)
        item = summarize_scores(code, scores, officer_count, text)
        if item.response_count > officer_count:
            logger.warning("Response count exceeds officer count",
                           question_code=code, response_count=item.response_count,
                           officer_count=officer_count)
        stats.append(item)

    logger.debug("Aggregated survey responses", questions=len(stats), officers=officer_count)
    return stats


def aggregate_officers(officers: Sequence[OfficerRecord],
                       code_to_text: Optional[Mapping[str, str]] = None) -> List[QuestionStatistics]:
    """Aggregate every officer's capability ratings; the officer count is len(officers)."""
    responses = [rating for officer in officers for rating in officer.capability_ratings]
    return aggregate(responses, len(officers), code_to_text)


def question_code_sort_key(code: str) -> Tuple:
    """Natural sort key: alphabetic prefix lexically, trailing digits numerically."""
    match = _TRAILING_DIGITS.match(code)
    if match is None:
        return (code, 0, 0, code)
    prefix, digits = match.groups()
    return (prefix, 1, int(digits), code)


def group_by_section(stats: Iterable[QuestionStatistics]) -> Dict[str, List[QuestionStatistics]]:
    """
    Partition statistics by the first character of their question code.

    Each group is ordered with question_code_sort_key, so "A2" precedes "A10".
    Group keys are in first-encounter order; callers choose display order.
    """
    sections: Dict[str, List[QuestionStatistics]] = OrderedDict()
    for item in stats:
        sections.setdefault(item.question_code[:1], []).append(item)
    for items in sections.values():
        items.sort(key=lambda q: question_code_sort_key(q.question_code))
    return sections


def rank_by_average(stats: Iterable[QuestionStatistics], limit: int = 5,
                    lowest: bool = False) -> List[QuestionStatistics]:
    """Highest (or lowest) rated items by average score; ties keep input order."""
    ordered = sorted(stats, key=lambda q: q.average_score if lowest else -q.average_score)
    return ordered[:limit]
