"""
Referral workflow between health officer, physician and specialist.

States:
    none -> waiting_for_doctor        officer asks for a physician visit
    waiting_for_doctor -> none        physician finds the worker fit
    * -> pending_specialist_result    physician's opinion is conditional/unfit
    pending_specialist_result -> none specialist result recorded

``next_status`` is the only place transitions are decided. The workflow
functions below apply one submission to a worker and return a new
``Worker``; the status is never rebuilt from exam history.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, Union

from .models import (
    Exam,
    FitnessStatus,
    FollowUpResult,
    HealthAssessment,
    ReferralStatus,
    Role,
    SpecialistFollowUp,
    Worker,
)

logger = logging.getLogger(__name__)

FOLLOW_UP_ROLES = frozenset({Role.DOCTOR, Role.HEALTH_OFFICER, Role.MANAGER, Role.DEVELOPER})
EXAM_ROLES = frozenset({Role.DOCTOR})
ASSESSMENT_ROLES = frozenset({Role.HEALTH_OFFICER})


class PermissionDenied(Exception):
    """Raised when a role may not perform a workflow action."""
    pass


@dataclass(frozen=True)
class AssessmentSubmitted:
    needs_doctor_visit: bool


@dataclass(frozen=True)
class ExamSubmitted:
    final_status: FitnessStatus


@dataclass(frozen=True)
class StatusOverride:
    target: ReferralStatus


Trigger = Union[AssessmentSubmitted, ExamSubmitted, StatusOverride]


def next_status(current: ReferralStatus, trigger: Trigger) -> ReferralStatus:
    """Referral status after ``trigger``.

    The current status is accepted for completeness; every trigger fully
    determines its outcome.
    """
    if isinstance(trigger, AssessmentSubmitted):
        if trigger.needs_doctor_visit:
            return ReferralStatus.WAITING_FOR_DOCTOR
        return ReferralStatus.NONE
    if isinstance(trigger, ExamSubmitted):
        if FitnessStatus(trigger.final_status) in (FitnessStatus.CONDITIONAL, FitnessStatus.UNFIT):
            return ReferralStatus.PENDING_SPECIALIST_RESULT
        return ReferralStatus.NONE
    if isinstance(trigger, StatusOverride):
        return ReferralStatus(trigger.target)
    raise TypeError(f"Unknown referral trigger: {trigger!r}")


def _check_role(role: Optional[Role], allowed: frozenset, action: str) -> None:
    if role is None:
        return
    if Role(role) not in allowed:
        raise PermissionDenied(f"Role '{Role(role).value}' may not {action}")


def can_manage_follow_up(role: Role) -> bool:
    return Role(role) in FOLLOW_UP_ROLES


def submit_assessment(worker: Worker, assessment: HealthAssessment,
                      role: Optional[Role] = None) -> Worker:
    """Record the officer's survey and route the worker accordingly."""
    _check_role(role, ASSESSMENT_ROLES, "record health assessments")
    status = next_status(worker.referral_status, AssessmentSubmitted(assessment.needs_doctor_visit))
    logger.info(f"Worker {worker.id}: assessment recorded, referral {worker.referral_status.value} -> {status.value}")
    return worker.copy(health_assessment=assessment, referral_status=status)


def submit_exam(worker: Worker, exam: Exam, role: Optional[Role] = None) -> Worker:
    """Prepend a new exam and apply the physician's final opinion."""
    _check_role(role, EXAM_ROLES, "record exams")
    status = next_status(worker.referral_status, ExamSubmitted(exam.final_opinion.status))
    logger.info(f"Worker {worker.id}: exam {exam.id} recorded, referral {worker.referral_status.value} -> {status.value}")
    return worker.copy(exams=[exam] + list(worker.exams), referral_status=status)


def update_referral_status(worker: Worker, status: ReferralStatus, note: Optional[str] = None,
                           role: Optional[Role] = None, today: Optional[str] = None) -> Worker:
    """Set the referral status directly, optionally attaching a specialist note.

    Without a note the existing follow-up record is kept as it is.
    """
    _check_role(role, FOLLOW_UP_ROLES, "manage referral follow-up")
    new_status = next_status(worker.referral_status, StatusOverride(ReferralStatus(status)))
    follow_up = worker.specialist_follow_up
    if note:
        follow_up = SpecialistFollowUp(
            date=today or date.today().isoformat(),
            doctor_note=note,
            result=FollowUpResult.CLEARED
        )
    logger.info(f"Worker {worker.id}: referral set to {new_status.value}")
    return worker.copy(referral_status=new_status, specialist_follow_up=follow_up)
