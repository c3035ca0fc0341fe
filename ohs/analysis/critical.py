"""
Critical-case classification for OHS.

A worker is critical when a referral is open, or when the latest exam shows
hearing loss, abnormal spirometry or a fitness opinion other than fit.
Results are recomputed from the current snapshot on every call.
"""

from typing import Dict, Iterable, List, Optional, Sequence

from ..models import FitnessStatus, ReferralStatus, SpirometryInterpretation, Worker


def hearing_average(thresholds: Sequence[float]) -> float:
    """Mean threshold in dB. An empty ear averages to 0."""
    if not thresholds:
        return 0.0
    return sum(float(t) for t in thresholds) / len(thresholds)


def hearing_limit(config: Optional[Dict]) -> float:
    if config:
        return float(config.get('HEARING_THRESHOLD_DB', 25.0))
    return 25.0


def critical_reasons(worker: Worker, config: Optional[Dict] = None) -> List[str]:
    """Findings that make ``worker`` critical, as short tags.

    Args:
        worker: Worker to classify.
        config: Configuration dictionary (optional, for the hearing threshold)

    Returns:
        Empty list when the worker is not critical.
    """
    reasons = []
    if worker.referral_status == ReferralStatus.WAITING_FOR_DOCTOR:
        reasons.append("Waiting for physician exam")
    elif worker.referral_status == ReferralStatus.PENDING_SPECIALIST_RESULT:
        reasons.append("Waiting for specialist result")

    exam = worker.latest_exam
    if exam is None:
        return reasons

    limit = hearing_limit(config)
    left = hearing_average(exam.hearing.left)
    right = hearing_average(exam.hearing.right)
    if left > limit or right > limit:
        reasons.append(f"Hearing loss (L {left:.1f} dB / R {right:.1f} dB)")
    if exam.spirometry.interpretation != SpirometryInterpretation.NORMAL:
        reasons.append(f"Spirometry: {exam.spirometry.interpretation.value}")
    if exam.final_opinion.status != FitnessStatus.FIT:
        reasons.append(f"Fitness: {exam.final_opinion.status.value}")
    return reasons


def is_critical(worker: Worker, config: Optional[Dict] = None) -> bool:
    return bool(critical_reasons(worker, config))


def critical_cases(workers: Iterable[Worker], config: Optional[Dict] = None) -> List[Worker]:
    """Workers needing follow-up, in input order."""
    return [w for w in workers if is_critical(w, config)]
