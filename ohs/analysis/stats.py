"""
Population statistics for the OHS dashboard.
"""

from collections import Counter
from typing import Dict, Iterable, List, Optional

from ..models import Exam, ReferralStatus, SpirometryInterpretation, Worker
from ..utils import parse_blood_pressure
from .critical import hearing_average, hearing_limit

DISEASE_GROUPS = ('vision', 'hearing', 'respiratory', 'metabolic')

METABOLIC_KEYWORDS = ('diabetes', 'blood pressure', 'hypertension', 'lipid', 'cholesterol')
VISION_KEYWORDS = ('glasses', 'spectacles')


def hearing_averages(exam: Exam) -> Dict[str, float]:
    """Average threshold per ear."""
    return {
        'left': hearing_average(exam.hearing.left),
        'right': hearing_average(exam.hearing.right),
    }


def _has_vision_issue(exam: Exam) -> bool:
    vision = exam.vision
    if vision is not None and (vision.left_corrected or vision.right_corrected
                               or vision.color_vision == 'Abnormal'):
        return True
    recommendations = (exam.final_opinion.recommendations or '').lower()
    return any(word in recommendations for word in VISION_KEYWORDS)


def _has_metabolic_issue(exam: Exam, config: Optional[Dict]) -> bool:
    limits = (config or {}).get('BP_LIMITS', {})
    systolic, diastolic = parse_blood_pressure(exam.bp)
    if systolic > limits.get('SYSTOLIC', 140) or diastolic > limits.get('DIASTOLIC', 90):
        return True
    reason = (exam.final_opinion.reason or '').lower()
    return any(word in reason for word in METABOLIC_KEYWORDS)


def disease_stats(workers: Iterable[Worker], config: Optional[Dict] = None) -> Dict[str, List[Worker]]:
    """Group workers by problems found in their latest exam.

    A worker can appear in several groups. Workers without exams appear in
    none.

    Args:
        workers: Workers to group.
        config: Configuration dictionary (optional, for hearing and BP limits)

    Returns:
        Dict mapping each of DISEASE_GROUPS to the matching workers.
    """
    stats: Dict[str, List[Worker]] = {group: [] for group in DISEASE_GROUPS}
    limit = hearing_limit(config)

    for worker in workers:
        exam = worker.latest_exam
        if exam is None:
            continue

        if _has_vision_issue(exam):
            stats['vision'].append(worker)

        averages = hearing_averages(exam)
        if averages['left'] > limit or averages['right'] > limit:
            stats['hearing'].append(worker)

        if exam.spirometry.interpretation != SpirometryInterpretation.NORMAL:
            stats['respiratory'].append(worker)

        if _has_metabolic_issue(exam, config):
            stats['metabolic'].append(worker)

    return stats


def department_counts(workers: Iterable[Worker]) -> Dict[str, int]:
    """Number of workers per department, largest first."""
    counts = Counter(w.department or 'Unknown' for w in workers)
    return dict(counts.most_common())


def referral_counts(workers: Iterable[Worker]) -> Dict[str, int]:
    """Number of workers in each referral state (all states present)."""
    counts = {status.value: 0 for status in ReferralStatus}
    for worker in workers:
        counts[worker.referral_status.value] += 1
    return counts
