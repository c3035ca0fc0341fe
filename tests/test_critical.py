"""
Unit tests for critical-case classification.
"""

import pytest

from ohs.analysis.critical import critical_cases, critical_reasons, hearing_average, is_critical
from ohs.models import FitnessStatus, ReferralStatus, SpirometryInterpretation
from ohs.referral import submit_exam


class TestHearingAverage:
    """Test cases for hearing_average."""

    def test_empty_is_zero(self):
        assert hearing_average([]) == 0.0

    def test_mean(self):
        assert hearing_average([10, 20, 30]) == 20.0


class TestIsCritical:
    """Test cases for is_critical."""

    def test_no_exams_no_referral(self, sample_worker):
        assert is_critical(sample_worker) is False

    def test_left_ear_average_above_threshold(self, sample_worker, make_exam):
        """Averages of 30 (left) and 10 (right) make the worker critical."""
        exam = make_exam(left=[30] * 6, right=[10] * 6)
        worker = submit_exam(sample_worker, exam)
        assert worker.referral_status == ReferralStatus.NONE
        assert is_critical(worker) is True

    def test_average_exactly_at_threshold_not_critical(self, sample_worker, make_exam):
        worker = sample_worker.copy(exams=[make_exam(left=[25] * 6, right=[25] * 6)])
        assert is_critical(worker) is False

    def test_empty_ears_not_critical(self, sample_worker, make_exam):
        worker = sample_worker.copy(exams=[make_exam(left=[], right=[])])
        assert is_critical(worker) is False

    @pytest.mark.parametrize("status", [ReferralStatus.WAITING_FOR_DOCTOR,
                                        ReferralStatus.PENDING_SPECIALIST_RESULT])
    def test_open_referral(self, sample_worker, status):
        assert is_critical(sample_worker.copy(referral_status=status)) is True

    def test_abnormal_spirometry(self, sample_worker, make_exam):
        exam = make_exam(interpretation=SpirometryInterpretation.RESTRICTIVE)
        assert is_critical(sample_worker.copy(exams=[exam])) is True

    def test_non_fit_opinion(self, sample_worker, make_exam):
        exam = make_exam(status=FitnessStatus.CONDITIONAL)
        assert is_critical(sample_worker.copy(exams=[exam])) is True

    def test_only_latest_exam_counts(self, sample_worker, make_exam):
        old = make_exam(exam_id='old', left=[60] * 6)
        new = make_exam(exam_id='new')
        assert is_critical(sample_worker.copy(exams=[new, old])) is False

    def test_threshold_from_config(self, sample_worker, make_exam, config):
        config['HEARING_THRESHOLD_DB'] = 15.0
        worker = sample_worker.copy(exams=[make_exam(left=[20] * 6)])
        assert is_critical(worker) is False
        assert is_critical(worker, config) is True


class TestCriticalReasons:
    """Test cases for critical_reasons and critical_cases."""

    def test_reasons_listed(self, sample_worker, make_exam):
        exam = make_exam(left=[40] * 6, interpretation=SpirometryInterpretation.OBSTRUCTIVE,
                         status=FitnessStatus.UNFIT)
        worker = sample_worker.copy(exams=[exam],
                                    referral_status=ReferralStatus.PENDING_SPECIALIST_RESULT)
        reasons = critical_reasons(worker)
        assert len(reasons) == 4
        assert "Spirometry: Obstructive" in reasons
        assert "Fitness: unfit" in reasons

    def test_no_reasons(self, sample_worker):
        assert critical_reasons(sample_worker) == []

    def test_critical_cases_filters(self, repository):
        workers = repository.load()
        cases = critical_cases(workers)
        # Baseline: worker 1 is waiting for the doctor; worker 2 is healthy
        assert [w.id for w in cases] == [1]

    def test_recomputed_on_each_call(self, sample_worker, make_exam):
        workers = [sample_worker]
        assert critical_cases(workers) == []
        workers[0] = submit_exam(sample_worker, make_exam(status=FitnessStatus.UNFIT))
        assert [w.id for w in critical_cases(workers)] == [sample_worker.id]
