"""
Clinical analysis modules for OHS.
"""

from .critical import critical_cases, critical_reasons, hearing_average, is_critical
from .stats import department_counts, disease_stats, hearing_averages, referral_counts

__all__ = [
    'hearing_average',
    'is_critical',
    'critical_reasons',
    'critical_cases',
    'disease_stats',
    'department_counts',
    'referral_counts',
    'hearing_averages',
]
