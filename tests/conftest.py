"""
Pytest configuration and fixtures for OHS tests.
"""

import pytest
import os
import sys
from unittest.mock import patch

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ohs.config import DEFAULT_CONFIG
from ohs.database import EncodedSlots, MemorySlotStore
from ohs.encryption import ObfuscationCodec
from ohs.models import (
    Exam,
    FinalOpinion,
    FitnessStatus,
    HealthAssessment,
    HearingData,
    PPEStatus,
    SpirometryData,
    SpirometryInterpretation,
    Worker,
)
from ohs.repository import WorkerRepository


@pytest.fixture(autouse=True)
def backup_dir(tmp_path):
    """Keep backup files written during a test inside its temporary directory."""
    directory = tmp_path / "backups"
    with patch('ohs.backup.BACKUP_DIR', str(directory)):
        yield directory


@pytest.fixture
def config():
    """Provide default configuration for tests."""
    return DEFAULT_CONFIG.copy()


@pytest.fixture
def store():
    """Empty in-memory slot store."""
    return MemorySlotStore()


@pytest.fixture
def slots(store):
    """Slots encoded with the default obfuscation codec."""
    return EncodedSlots(store, ObfuscationCodec())


@pytest.fixture
def repository(slots, config):
    """Repository over in-memory slots (baseline seeded on first load)."""
    return WorkerRepository(slots, settings=config)


@pytest.fixture
def make_exam():
    """Factory for exams with chosen hearing, spirometry and fitness."""
    def _make(left=(10, 10, 10, 10, 10, 10), right=(10, 10, 10, 10, 10, 10),
              interpretation=SpirometryInterpretation.NORMAL,
              status=FitnessStatus.FIT, exam_id='e-1', exam_date='2025-03-01', **kwargs):
        return Exam(
            id=exam_id,
            date=exam_date,
            hearing=HearingData(left=tuple(left), right=tuple(right)),
            spirometry=SpirometryData(fvc=4.0, fev1=3.3, fev1_fvc=82, pef=420,
                                      interpretation=interpretation),
            final_opinion=FinalOpinion(status=status),
            **kwargs
        )
    return _make


@pytest.fixture
def sample_worker():
    """Worker with no exams and no open referral."""
    return Worker(
        id=10,
        national_id='1111111111',
        name='Reza Tehrani',
        department='Casting',
        work_years=3,
    )


@pytest.fixture
def sample_assessment():
    """Assessment asking for a physician visit."""
    return HealthAssessment(
        date='2025-02-10',
        officer_name='Eng. Rad',
        hazards={'noise': True, 'dust': True, 'acids': False},
        ppe_status=PPEStatus.MODERATE,
        description='High noise near the furnace.',
        needs_doctor_visit=True,
    )
