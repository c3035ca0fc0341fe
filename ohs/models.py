"""
Domain model for OHS: workers, exams, assessments and accounts.

Records convert to and from the portable camelCase JSON shape used in
storage slots and backup files. Keys a record does not recognise are kept
in ``extra`` and written back unchanged, so files produced by newer or
older releases survive a load/save cycle.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple, Type, TypeVar

from .utils import generate_id

E = TypeVar('E', bound=Enum)


class ReferralStatus(str, Enum):
    NONE = 'none'
    WAITING_FOR_DOCTOR = 'waiting_for_doctor'
    PENDING_SPECIALIST_RESULT = 'pending_specialist_result'


class Role(str, Enum):
    DOCTOR = 'doctor'
    HEALTH_OFFICER = 'health_officer'
    MANAGER = 'manager'
    DEVELOPER = 'developer'


class FitnessStatus(str, Enum):
    FIT = 'fit'
    CONDITIONAL = 'conditional'
    UNFIT = 'unfit'


class SpirometryInterpretation(str, Enum):
    NORMAL = 'Normal'
    OBSTRUCTIVE = 'Obstructive'
    RESTRICTIVE = 'Restrictive'
    MIXED = 'Mixed'


class PPEStatus(str, Enum):
    GOOD = 'good'
    MODERATE = 'moderate'
    POOR = 'poor'


class FollowUpResult(str, Enum):
    CLEARED = 'cleared'
    PERMANENT_RESTRICTION = 'permanent_restriction'
    OBSERVATION = 'observation'


class LicenseType(str, Enum):
    TRIAL = 'trial'
    FULL = 'full'


class HazardCode(str, Enum):
    """Workplace hazards surveyed by the health officer."""
    # Physical
    NOISE = 'noise'
    VIBRATION = 'vibration'
    HEAT = 'heat'
    COLD = 'cold'
    LIGHTING = 'lighting'
    RADIATION_ION = 'radiation_ion'
    RADIATION_NON = 'radiation_non'
    # Chemical
    DUST = 'dust'
    FUMES = 'fumes'
    SOLVENTS = 'solvents'
    GASES = 'gases'
    ACIDS = 'acids'
    # Ergonomic
    LIFTING = 'lifting'
    POSTURE = 'posture'
    REPETITIVE = 'repetitive'
    STATIC = 'static'
    # Biological / psychosocial
    BIOLOGICAL = 'biological'
    SHIFT_WORK = 'shift_work'
    STRESS = 'stress'


HAZARD_CATEGORIES = {
    'physical': [HazardCode.NOISE, HazardCode.VIBRATION, HazardCode.HEAT, HazardCode.COLD,
                 HazardCode.LIGHTING, HazardCode.RADIATION_ION, HazardCode.RADIATION_NON],
    'chemical': [HazardCode.DUST, HazardCode.FUMES, HazardCode.SOLVENTS, HazardCode.GASES,
                 HazardCode.ACIDS],
    'ergonomic': [HazardCode.LIFTING, HazardCode.POSTURE, HazardCode.REPETITIVE, HazardCode.STATIC],
    'biological_psychosocial': [HazardCode.BIOLOGICAL, HazardCode.SHIFT_WORK, HazardCode.STRESS],
}


class LabCode(str, Enum):
    WBC = 'wbc'
    RBC = 'rbc'
    HB = 'hb'
    PLT = 'plt'
    FBS = 'fbs'
    CHOL = 'chol'
    TG = 'tg'
    CREATININE = 'creatinine'
    ALT = 'alt'
    AST = 'ast'


ORGAN_SYSTEMS = {
    'general': {
        'label': 'General',
        'symptoms': ['Weight loss', 'Loss of appetite', 'Chronic fatigue', 'Sleep disorder',
                     'Excessive sweating', 'Fever'],
        'signs': ['Ill/toxic appearance', 'Pale mucosa'],
    },
    'eyes': {
        'label': 'Eyes',
        'symptoms': ['Reduced vision', 'Blurred vision', 'Eye strain', 'Diplopia', 'Burning/itching'],
        'signs': ['Abnormal reflex', 'Redness', 'Icteric sclera', 'Nystagmus'],
    },
    'skin': {
        'label': 'Skin and hair',
        'symptoms': ['Itching', 'Hair loss', 'Redness', 'Discoloration', 'Chronic wound'],
        'signs': ['Macule/papule', 'Ulcer', 'Urticaria', 'Clubbing', 'Alopecia'],
    },
    'ent': {
        'label': 'Ear, nose and throat',
        'symptoms': ['Hearing loss', 'Tinnitus', 'Vertigo', 'Ear pain', 'Epistaxis'],
        'signs': ['Tympanic inflammation', 'Tympanic perforation', 'Cerumen', 'Nasal polyp'],
    },
    'lungs': {
        'label': 'Lungs',
        'symptoms': ['Cough', 'Sputum', 'Exertional dyspnea', 'Wheezing'],
        'signs': ['Hoarseness', 'Wheeze', 'Crackles', 'Tachypnea'],
    },
    'cardio': {
        'label': 'Cardiovascular',
        'symptoms': ['Chest pain', 'Palpitations', 'Nocturnal dyspnea', 'Cyanosis'],
        'signs': ['Abnormal S1/S2', 'Extra heart sound', 'Arrhythmia', 'Varicose veins', 'Edema'],
    },
    'digestive': {
        'label': 'Abdomen and pelvis',
        'symptoms': ['Nausea/vomiting', 'Abdominal pain', 'Heartburn', 'Diarrhea/constipation'],
        'signs': ['Abdominal tenderness', 'Hepatomegaly', 'Splenomegaly', 'Abdominal mass'],
    },
    'musculoskeletal': {
        'label': 'Musculoskeletal',
        'symptoms': ['Joint stiffness', 'Low back pain', 'Knee pain', 'Shoulder pain'],
        'signs': ['Limited range of motion', 'Reduced muscle strength', 'Scoliosis', 'Positive SLR test'],
    },
    'neuro': {
        'label': 'Nervous system',
        'symptoms': ['Headache', 'Dizziness', 'Tremor', 'Memory impairment', 'Paresthesia'],
        'signs': ['Abnormal reflex', 'Positive Romberg test', 'Tremor'],
    },
    'psych': {
        'label': 'Mental health',
        'symptoms': ['Irritability', 'Aggression', 'Anxiety', 'Low mood'],
        'signs': ['Delusion', 'Hallucination', 'Disorientation'],
    },
}

MEDICAL_HISTORY_QUESTIONS = [
    ('history', "Do you have a history of illness?"),
    ('history', "If ill, do your symptoms change at the workplace?"),
    ('history', "If ill, do colleagues have similar symptoms at work?"),
    ('history', "If ill, do your symptoms change during holidays and leave?"),
    ('history', "Are you allergic to any food, drug or substance?"),
    ('history', "Have you ever been hospitalized?"),
    ('history', "Have you ever had surgery?"),
    ('history', "Is there a family history of cancer or chronic disease?"),
    ('lifestyle', "Do you take any regular medication?"),
    ('lifestyle', "Do you currently smoke?"),
    ('lifestyle', "Have you smoked in the past?"),
    ('lifestyle', "Do you exercise or have a regular hobby?"),
    ('occupational', "Have you ever had an occupational accident?"),
    ('occupational', "Have you been absent from work due to illness for more than 3 days?"),
    ('occupational', "Is your home near an industrial site?"),
    ('occupational', "Have you ever been referred to a medical commission?"),
]


def split_known(mapping: Dict[str, Any], codes: Type[E]) -> Tuple[Dict[E, Any], Dict[str, Any]]:
    """Split a code-keyed map into recognised codes and pass-through extras."""
    valid = {c.value: c for c in codes}
    known: Dict[E, Any] = {}
    unknown: Dict[str, Any] = {}
    for key, value in mapping.items():
        if key in valid:
            known[valid[key]] = value
        else:
            unknown[key] = value
    return known, unknown


def _opt(d: Dict[str, Any], **values: Any) -> Dict[str, Any]:
    """Add keys whose value is not None."""
    for key, value in values.items():
        if value is not None:
            d[key] = value
    return d


def _extra(data: Dict[str, Any], known: Iterable[str]) -> Dict[str, Any]:
    known = set(known)
    return {k: v for k, v in data.items() if k not in known}


def _mapping(data: Any, name: str) -> Dict[str, Any]:
    """Return ``data`` if it is a JSON object, treating None as empty."""
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise TypeError(f"{name} must be an object, got {type(data).__name__}")
    return data


def _sequence(data: Any, name: str) -> list:
    if data is None:
        return []
    if not isinstance(data, list):
        raise TypeError(f"{name} must be a list, got {type(data).__name__}")
    return data


def _thresholds(values: Any) -> Tuple[float, ...]:
    """Audiogram thresholds as numbers. Numeric strings are converted."""
    result = []
    for value in _sequence(values, 'hearing thresholds'):
        if isinstance(value, bool):
            raise TypeError("hearing threshold must be numeric")
        if isinstance(value, str):
            value = float(value)
        elif not isinstance(value, (int, float)):
            raise TypeError(f"hearing threshold must be numeric, got {value!r}")
        result.append(value)
    return tuple(result)


# --- Exam sub-records -------------------------------------------------------

@dataclass(frozen=True)
class SpeechMetrics:
    srt: str = ''
    sds: str = ''
    ucl: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _opt({'srt': self.srt, 'sds': self.sds}, ucl=self.ucl)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'SpeechMetrics':
        data = _mapping(data, 'speech metrics')
        return cls(srt=str(data.get('srt', '')), sds=str(data.get('sds', '')), ucl=data.get('ucl'))


@dataclass(frozen=True)
class HearingData:
    """Air-conduction thresholds (dB) at AUDIOMETRY_FREQUENCIES, per ear."""
    left: Tuple[float, ...] = ()
    right: Tuple[float, ...] = ()
    speech_left: SpeechMetrics = field(default_factory=SpeechMetrics)
    speech_right: SpeechMetrics = field(default_factory=SpeechMetrics)
    report: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'left': list(self.left),
            'right': list(self.right),
            'speech': {'left': self.speech_left.to_dict(), 'right': self.speech_right.to_dict()},
            'report': self.report,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'HearingData':
        data = _mapping(data, 'hearing')
        speech = _mapping(data.get('speech'), 'speech')
        return cls(
            left=_thresholds(data.get('left')),
            right=_thresholds(data.get('right')),
            speech_left=SpeechMetrics.from_dict(speech.get('left')),
            speech_right=SpeechMetrics.from_dict(speech.get('right')),
            report=data.get('report', ''),
        )


@dataclass(frozen=True)
class SpirometryData:
    fvc: float = 0
    fev1: float = 0
    fev1_fvc: float = 0
    pef: float = 0
    interpretation: SpirometryInterpretation = SpirometryInterpretation.NORMAL
    fvc_pred: Optional[float] = None
    fev1_pred: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        d = {
            'fvc': self.fvc,
            'fev1': self.fev1,
            'fev1_fvc': self.fev1_fvc,
            'pef': self.pef,
            'interpretation': self.interpretation.value,
        }
        return _opt(d, fvcPred=self.fvc_pred, fev1Pred=self.fev1_pred)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'SpirometryData':
        data = _mapping(data, 'spirometry')
        return cls(
            fvc=data.get('fvc', 0),
            fev1=data.get('fev1', 0),
            fev1_fvc=data.get('fev1_fvc', 0),
            pef=data.get('pef', 0),
            interpretation=SpirometryInterpretation(data.get('interpretation', 'Normal')),
            fvc_pred=data.get('fvcPred'),
            fev1_pred=data.get('fev1Pred'),
        )


@dataclass(frozen=True)
class VisionData:
    right_uncorrected: str = ''
    right_corrected: str = ''
    left_uncorrected: str = ''
    left_corrected: str = ''
    color_vision: str = 'Normal'
    visual_field: str = 'Normal'
    depth_perception: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'acuity': {
                'right': {'uncorrected': self.right_uncorrected, 'corrected': self.right_corrected},
                'left': {'uncorrected': self.left_uncorrected, 'corrected': self.left_corrected},
            },
            'colorVision': self.color_vision,
            'visualField': self.visual_field,
            'depthPerception': self.depth_perception,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VisionData':
        data = _mapping(data, 'vision')
        acuity = _mapping(data.get('acuity'), 'acuity')
        right = _mapping(acuity.get('right'), 'acuity')
        left = _mapping(acuity.get('left'), 'acuity')
        return cls(
            right_uncorrected=right.get('uncorrected', ''),
            right_corrected=right.get('corrected', ''),
            left_uncorrected=left.get('uncorrected', ''),
            left_corrected=left.get('corrected', ''),
            color_vision=data.get('colorVision', 'Normal'),
            visual_field=data.get('visualField', 'Normal'),
            depth_perception=data.get('depthPerception', ''),
        )


@dataclass(frozen=True)
class MedicalHistoryItem:
    id: int
    question: str
    category: str = ''
    has_condition: bool = False
    description: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'category': self.category,
            'question': self.question,
            'hasCondition': self.has_condition,
            'description': self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MedicalHistoryItem':
        data = _mapping(data, 'medical history item')
        return cls(
            id=data['id'],
            question=data.get('question', ''),
            category=data.get('category', ''),
            has_condition=bool(data.get('hasCondition', False)),
            description=data.get('description', ''),
        )


@dataclass(frozen=True)
class OrganSystemFinding:
    system_name: str
    symptoms: Tuple[str, ...] = ()
    signs: Tuple[str, ...] = ()
    description: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'systemName': self.system_name,
            'symptoms': list(self.symptoms),
            'signs': list(self.signs),
            'description': self.description,
        }

    @classmethod
    def from_dict(cls, key: str, data: Dict[str, Any]) -> 'OrganSystemFinding':
        data = _mapping(data, 'organ system')
        return cls(
            system_name=data.get('systemName', key),
            symptoms=tuple(_sequence(data.get('symptoms'), 'symptoms')),
            signs=tuple(_sequence(data.get('signs'), 'signs')),
            description=data.get('description', ''),
        )

    @property
    def has_findings(self) -> bool:
        return bool(self.symptoms or self.signs or self.description.strip())


@dataclass(frozen=True)
class FinalOpinion:
    status: FitnessStatus = FitnessStatus.FIT
    conditions: Optional[str] = None
    reason: Optional[str] = None
    recommendations: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _opt({'status': self.status.value}, conditions=self.conditions,
                    reason=self.reason, recommendations=self.recommendations)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'FinalOpinion':
        data = _mapping(data, 'final opinion')
        return cls(
            status=FitnessStatus(data.get('status', 'fit')),
            conditions=data.get('conditions'),
            reason=data.get('reason'),
            recommendations=data.get('recommendations'),
        )


_EXAM_KEYS = ('id', 'date', 'height', 'weight', 'bmi', 'pulse', 'bp', 'medicalHistory',
              'organSystems', 'hearing', 'vision', 'spirometry', 'labResults', 'finalOpinion')


@dataclass(frozen=True)
class Exam:
    """One periodic examination. Never modified once recorded."""
    id: str
    date: str
    hearing: HearingData = field(default_factory=HearingData)
    spirometry: SpirometryData = field(default_factory=SpirometryData)
    final_opinion: FinalOpinion = field(default_factory=FinalOpinion)
    vision: Optional[VisionData] = None
    lab_results: Dict[str, str] = field(default_factory=dict)
    medical_history: Tuple[MedicalHistoryItem, ...] = ()
    organ_systems: Dict[str, OrganSystemFinding] = field(default_factory=dict)
    bp: str = ''
    height: Optional[float] = None
    weight: Optional[float] = None
    bmi: Optional[float] = None
    pulse: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(cls, exam_date: Optional[str] = None, **kwargs: Any) -> 'Exam':
        """New exam with a generated id, dated today unless given."""
        return cls(id=generate_id(), date=exam_date or date.today().isoformat(), **kwargs)

    def lab_value(self, code: LabCode) -> Optional[str]:
        return self.lab_results.get(code.value) or None

    @property
    def known_labs(self) -> Dict[LabCode, str]:
        return split_known(self.lab_results, LabCode)[0]

    def to_dict(self) -> Dict[str, Any]:
        d = dict(self.extra)
        d.update({
            'id': self.id,
            'date': self.date,
            'bp': self.bp,
            'medicalHistory': [item.to_dict() for item in self.medical_history],
            'organSystems': {k: v.to_dict() for k, v in self.organ_systems.items()},
            'hearing': self.hearing.to_dict(),
            'spirometry': self.spirometry.to_dict(),
            'labResults': dict(self.lab_results),
            'finalOpinion': self.final_opinion.to_dict(),
        })
        if self.vision is not None:
            d['vision'] = self.vision.to_dict()
        return _opt(d, height=self.height, weight=self.weight, bmi=self.bmi, pulse=self.pulse)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Exam':
        data = _mapping(data, 'exam')
        vision = data.get('vision')
        return cls(
            id=str(data['id']),
            date=data.get('date', ''),
            hearing=HearingData.from_dict(data.get('hearing')),
            spirometry=SpirometryData.from_dict(data.get('spirometry')),
            final_opinion=FinalOpinion.from_dict(data.get('finalOpinion')),
            vision=VisionData.from_dict(vision) if vision else None,
            lab_results=dict(_mapping(data.get('labResults'), 'labResults')),
            medical_history=tuple(MedicalHistoryItem.from_dict(i)
                                  for i in _sequence(data.get('medicalHistory'), 'medicalHistory')),
            organ_systems={k: OrganSystemFinding.from_dict(k, v)
                           for k, v in _mapping(data.get('organSystems'), 'organSystems').items()},
            bp=data.get('bp', ''),
            height=data.get('height'),
            weight=data.get('weight'),
            bmi=data.get('bmi'),
            pulse=data.get('pulse'),
            extra=_extra(data, _EXAM_KEYS),
        )


def blank_medical_history() -> Tuple[MedicalHistoryItem, ...]:
    """The fixed questionnaire with every answer unset."""
    return tuple(
        MedicalHistoryItem(id=idx, question=question, category=category)
        for idx, (category, question) in enumerate(MEDICAL_HISTORY_QUESTIONS)
    )


def blank_organ_systems() -> Dict[str, OrganSystemFinding]:
    return {key: OrganSystemFinding(system_name=key) for key in ORGAN_SYSTEMS}


# --- Workflow records -------------------------------------------------------

@dataclass(frozen=True)
class HealthAssessment:
    """Health officer's point-in-time hazard survey."""
    date: str
    officer_name: str
    hazards: Dict[str, bool] = field(default_factory=dict)
    ppe_status: PPEStatus = PPEStatus.GOOD
    description: str = ''
    needs_doctor_visit: bool = False

    @property
    def exposures(self) -> List[HazardCode]:
        """Recognised hazards marked present, in declaration order."""
        known = split_known(self.hazards, HazardCode)[0]
        return [code for code in HazardCode if known.get(code)]

    @property
    def unrecognized_hazards(self) -> Dict[str, bool]:
        return split_known(self.hazards, HazardCode)[1]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'date': self.date,
            'officerName': self.officer_name,
            'hazards': dict(self.hazards),
            'ppeStatus': self.ppe_status.value,
            'description': self.description,
            'needsDoctorVisit': self.needs_doctor_visit,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HealthAssessment':
        data = _mapping(data, 'health assessment')
        return cls(
            date=data.get('date', ''),
            officer_name=data.get('officerName', ''),
            hazards={k: bool(v) for k, v in _mapping(data.get('hazards'), 'hazards').items()},
            ppe_status=PPEStatus(data.get('ppeStatus', 'good')),
            description=data.get('description', ''),
            needs_doctor_visit=bool(data.get('needsDoctorVisit', False)),
        )


@dataclass(frozen=True)
class SpecialistFollowUp:
    date: str
    doctor_note: str
    result: FollowUpResult = FollowUpResult.CLEARED

    def to_dict(self) -> Dict[str, Any]:
        return {'date': self.date, 'doctorNote': self.doctor_note, 'result': self.result.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SpecialistFollowUp':
        data = _mapping(data, 'specialist follow-up')
        return cls(
            date=data.get('date', ''),
            doctor_note=data.get('doctorNote', ''),
            result=FollowUpResult(data.get('result', 'cleared')),
        )


_WORKER_KEYS = ('id', 'nationalId', 'personnelCode', 'name', 'department', 'workYears',
                'exams', 'healthAssessment', 'referralStatus', 'specialistFollowUp')


@dataclass
class Worker:
    id: int
    national_id: str
    name: str
    department: str = ''
    work_years: int = 0
    personnel_code: Optional[str] = None
    referral_status: ReferralStatus = ReferralStatus.NONE
    exams: List[Exam] = field(default_factory=list)
    health_assessment: Optional[HealthAssessment] = None
    specialist_follow_up: Optional[SpecialistFollowUp] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def latest_exam(self) -> Optional[Exam]:
        """Most recent exam (exams are kept newest first)."""
        return self.exams[0] if self.exams else None

    def copy(self, **changes: Any) -> 'Worker':
        changes.setdefault('exams', list(self.exams))
        changes.setdefault('extra', dict(self.extra))
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        d = dict(self.extra)
        d.update({
            'id': self.id,
            'nationalId': self.national_id,
            'name': self.name,
            'department': self.department,
            'workYears': self.work_years,
            'referralStatus': self.referral_status.value,
            'exams': [exam.to_dict() for exam in self.exams],
        })
        if self.personnel_code is not None:
            d['personnelCode'] = self.personnel_code
        if self.health_assessment is not None:
            d['healthAssessment'] = self.health_assessment.to_dict()
        if self.specialist_follow_up is not None:
            d['specialistFollowUp'] = self.specialist_follow_up.to_dict()
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Worker':
        data = _mapping(data, 'worker')
        assessment = data.get('healthAssessment')
        follow_up = data.get('specialistFollowUp')
        return cls(
            id=data['id'],
            national_id=str(data['nationalId']),
            name=data.get('name', ''),
            department=data.get('department', ''),
            work_years=data.get('workYears', 0),
            personnel_code=data.get('personnelCode'),
            referral_status=ReferralStatus(data.get('referralStatus', 'none')),
            exams=[Exam.from_dict(e) for e in _sequence(data.get('exams'), 'exams')],
            health_assessment=HealthAssessment.from_dict(assessment) if assessment else None,
            specialist_follow_up=SpecialistFollowUp.from_dict(follow_up) if follow_up else None,
            extra=_extra(data, _WORKER_KEYS),
        )


# --- Accounts and licensing -------------------------------------------------

@dataclass
class User:
    id: str
    username: str
    password_hash: str
    role: Role
    name: str
    created_at: str
    must_change_password: bool = False
    failed_login_attempts: int = 0
    locked_until: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _opt({
            'id': self.id,
            'username': self.username,
            'passwordHash': self.password_hash,
            'role': self.role.value,
            'name': self.name,
            'createdAt': self.created_at,
            'mustChangePassword': self.must_change_password,
            'failedLoginAttempts': self.failed_login_attempts,
        }, lockedUntil=self.locked_until)

    def public_dict(self) -> Dict[str, Any]:
        """User fields safe to hand to callers (no password hash)."""
        d = self.to_dict()
        d.pop('passwordHash')
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'User':
        data = _mapping(data, 'user')
        return cls(
            id=data['id'],
            username=data['username'],
            password_hash=data.get('passwordHash', ''),
            role=Role(data['role']),
            name=data.get('name', ''),
            created_at=data.get('createdAt', ''),
            must_change_password=bool(data.get('mustChangePassword', False)),
            failed_login_attempts=int(data.get('failedLoginAttempts', 0)),
            locked_until=data.get('lockedUntil'),
        )


@dataclass
class LicenseInfo:
    is_active: bool
    type: LicenseType
    activation_date: str
    serial_key: Optional[str] = None
    trial_days_remaining: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return _opt({
            'isActive': self.is_active,
            'type': self.type.value,
            'activationDate': self.activation_date,
        }, serialKey=self.serial_key, trialDaysRemaining=self.trial_days_remaining)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LicenseInfo':
        data = _mapping(data, 'license')
        return cls(
            is_active=bool(data['isActive']),
            type=LicenseType(data['type']),
            activation_date=data['activationDate'],
            serial_key=data.get('serialKey'),
            trial_days_remaining=data.get('trialDaysRemaining'),
        )


@dataclass
class Organization:
    id: str
    name: str
    license_key: str
    created_at: str
    contact_person: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'contactPerson': self.contact_person,
            'licenseKey': self.license_key,
            'createdAt': self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Organization':
        data = _mapping(data, 'organization')
        return cls(
            id=data['id'],
            name=data['name'],
            license_key=data['licenseKey'],
            created_at=data.get('createdAt', ''),
            contact_person=data.get('contactPerson', ''),
        )
