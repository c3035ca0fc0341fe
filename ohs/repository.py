"""
Worker and exam repository for OHS.

The whole worker collection is stored in one slot and always written back
in full. Reads that find nothing usable reseed the fixed baseline dataset.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from . import backup as backup_files
from . import config
from .config import LAST_SYNC_SLOT, WORKERS_SLOT
from .models import Exam, HealthAssessment, ReferralStatus, Role, Worker
from .referral import submit_assessment, submit_exam, update_referral_status
from .utils import validate_national_id

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Base class for repository validation failures."""
    pass


class DuplicateWorkerError(RepositoryError):
    """A worker with the same national ID already exists."""
    pass


class WorkerNotFoundError(RepositoryError):
    pass


class InvalidBackupError(RepositoryError):
    """Backup document rejected; stored data is unchanged."""
    pass


BASELINE_WORKERS: List[Dict[str, Any]] = [
    {
        'id': 1,
        'nationalId': '0123456789',
        'personnelCode': '9001',
        'name': 'Ali Ahmadi',
        'department': 'Molten Bath',
        'workYears': 8,
        'referralStatus': 'waiting_for_doctor',
        'healthAssessment': {
            'date': '2025-02-01',
            'officerName': 'Eng. Rad',
            'hazards': {'noise': True, 'dust': False, 'chemicals': True, 'ergonomics': False,
                        'radiation': False, 'biological': False},
            'ppeStatus': 'moderate',
            'description': 'Exposure to acid vapours. Complains of eye irritation.',
            'needsDoctorVisit': True,
        },
        'exams': [
            {
                'id': '101',
                'date': '2025-01-15',
                'hearing': {
                    'left': [10, 15, 20, 25, 40, 50],
                    'right': [10, 10, 15, 20, 30, 40],
                    'speech': {'left': {'srt': '15', 'sds': '96'}, 'right': {'srt': '10', 'sds': '100'}},
                    'report': 'Mild high-frequency hearing loss in the left ear.',
                },
                'bp': '130/85',
                'spirometry': {'fvc': 4.2, 'fev1': 2.8, 'fev1_fvc': 66, 'pef': 450,
                               'interpretation': 'Obstructive'},
                'vision': {
                    'acuity': {'right': {'uncorrected': '10/10', 'corrected': ''},
                               'left': {'uncorrected': '9/10', 'corrected': ''}},
                    'colorVision': 'Normal', 'visualField': 'Normal', 'depthPerception': 'Normal',
                },
                'medicalHistory': [],
                'organSystems': {},
                'labResults': {},
                'finalOpinion': {'status': 'fit'},
            }
        ],
    },
    {
        'id': 2,
        'nationalId': '9876543210',
        'personnelCode': '9002',
        'name': 'Maryam Karimi',
        'department': 'Quality Control',
        'workYears': 4,
        'referralStatus': 'none',
        'exams': [
            {
                'id': '201',
                'date': '2025-01-20',
                'hearing': {
                    'left': [5, 5, 10, 10, 10, 15],
                    'right': [5, 5, 5, 10, 10, 10],
                    'speech': {'left': {'srt': '5', 'sds': '100'}, 'right': {'srt': '5', 'sds': '100'}},
                    'report': 'Normal hearing.',
                },
                'bp': '115/75',
                'spirometry': {'fvc': 3.8, 'fev1': 3.2, 'fev1_fvc': 84, 'pef': 380,
                               'interpretation': 'Normal'},
                'vision': {
                    'acuity': {'right': {'uncorrected': '10/10', 'corrected': ''},
                               'left': {'uncorrected': '10/10', 'corrected': ''}},
                    'colorVision': 'Normal', 'visualField': 'Normal', 'depthPerception': 'Normal',
                },
                'medicalHistory': [],
                'organSystems': {},
                'labResults': {},
                'finalOpinion': {'status': 'fit'},
            }
        ],
    },
]


def baseline_workers() -> List[Worker]:
    """Fresh copy of the seed dataset."""
    return [Worker.from_dict(item) for item in json.loads(json.dumps(BASELINE_WORKERS))]


def parse_backup_document(text: Union[str, bytes]) -> List[Worker]:
    """Validate a backup document and build workers from it.

    The document must be a JSON array. Empty entries are skipped; every
    other entry must be an object carrying ``id`` and ``nationalId``.

    Raises:
        InvalidBackupError: With the reason the document was rejected.
    """
    try:
        if isinstance(text, bytes):
            text = text.decode('utf-8-sig')
        data = json.loads(text)
    except (ValueError, UnicodeDecodeError) as e:
        logger.warning(f"Backup is not valid JSON: {e}")
        raise InvalidBackupError("Failed to parse JSON")

    if not isinstance(data, list):
        raise InvalidBackupError("Invalid file format")

    workers = []
    seen_ids = set()
    seen_national_ids = set()
    for entry in data:
        if not entry:
            continue
        if not isinstance(entry, dict) or entry.get('id') in (None, '') \
                or entry.get('nationalId') in (None, ''):
            raise InvalidBackupError("Invalid file format")
        try:
            worker = Worker.from_dict(entry)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Backup entry {entry.get('id')} rejected: {e}")
            raise InvalidBackupError("Invalid file format")
        if str(worker.id) in seen_ids:
            raise InvalidBackupError(f"Duplicate worker id in file: {worker.id}")
        if worker.national_id in seen_national_ids:
            raise InvalidBackupError(f"Duplicate national ID in file: {worker.national_id}")
        seen_ids.add(str(worker.id))
        seen_national_ids.add(worker.national_id)
        workers.append(worker)
    return workers


class WorkerRepository:
    """Durable storage of the worker/exam dataset.

    Args:
        slots: ``EncodedSlots`` used for the workers and last-sync slots.
        settings: Configuration dict; loaded from file if omitted.
    """

    def __init__(self, slots, settings: Optional[Dict] = None):
        self.slots = slots
        self.settings = settings or config.load_config()

    # --- whole-collection operations ---------------------------------------

    def load(self) -> List[Worker]:
        """Decode the stored collection, seeding the baseline if none is usable."""
        if self.slots.read_plain(WORKERS_SLOT) is None:
            logger.info("No worker data stored, seeding baseline dataset")
            return self._reseed()

        data = self.slots.read(WORKERS_SLOT)
        if not isinstance(data, list):
            logger.warning("Stored worker data unreadable, seeding baseline dataset")
            return self._reseed()
        try:
            return [Worker.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Stored worker data malformed ({e}), seeding baseline dataset")
            return self._reseed()

    def save(self, workers: Iterable[Worker]) -> None:
        """Replace the stored collection."""
        workers = list(workers)
        self.slots.write(WORKERS_SLOT, [w.to_dict() for w in workers])
        logger.debug(f"Saved {len(workers)} workers")

    def _reseed(self) -> List[Worker]:
        workers = baseline_workers()
        self.save(workers)
        return workers

    def _safety_backup(self, reason: str) -> Optional[str]:
        """Back up the stored records as they are before they get replaced."""
        data = self.slots.read(WORKERS_SLOT)
        if not isinstance(data, list):
            return None
        path = backup_files.create_backup(backup_files.to_backup_json(data), reason)
        if not path:
            logger.warning(f"Could not create {reason} backup, proceeding anyway")
        return path

    def factory_reset(self) -> List[Worker]:
        """Discard worker data and reseed the baseline.

        Users and license slots are left alone so nobody is locked out.
        """
        self._safety_backup("pre_reset")
        self.slots.delete(WORKERS_SLOT)
        logger.warning("Factory reset: worker data discarded")
        return self._reseed()

    def backup_document(self, workers: Optional[Iterable[Worker]] = None) -> str:
        """Plain JSON backup of ``workers`` (default: the stored collection)."""
        if workers is None:
            workers = self.load()
        return backup_files.to_backup_json([w.to_dict() for w in workers])

    def backup(self, workers: Optional[Iterable[Worker]] = None,
               reason: str = "manual") -> Optional[str]:
        """Write a backup file into the backup directory. Returns its path."""
        return backup_files.create_backup(self.backup_document(workers), reason)

    def write_backup(self, path: Union[str, Path],
                     workers: Optional[Iterable[Worker]] = None) -> str:
        """Write a backup document to an explicit path for export."""
        try:
            Path(path).write_text(self.backup_document(workers), encoding='utf-8')
        except OSError as e:
            raise backup_files.BackupError(f"Could not write backup: {e}")
        return str(path)

    def restore(self, document: Union[str, bytes]) -> List[Worker]:
        """Replace the whole collection with a backup document.

        Raises:
            InvalidBackupError: Document rejected; nothing is written.
        """
        workers = parse_backup_document(document)
        self._safety_backup("pre_restore")
        self.save(workers)
        logger.warning(f"Worker data replaced from backup ({len(workers)} workers)")
        return workers

    def restore_file(self, backup_path: str) -> List[Worker]:
        try:
            document = backup_files.read_backup(backup_path)
        except backup_files.RestoreError as e:
            raise InvalidBackupError(str(e))
        return self.restore(document)

    # --- single-worker operations ------------------------------------------

    def get_worker(self, worker_id: int) -> Worker:
        worker = next((w for w in self.load() if w.id == worker_id), None)
        if worker is None:
            raise WorkerNotFoundError(f"Worker {worker_id} not found")
        return worker

    def find_by_national_id(self, national_id: str) -> Optional[Worker]:
        national_id = (national_id or '').strip()
        return next((w for w in self.load() if w.national_id == national_id), None)

    @staticmethod
    def _next_id(workers: List[Worker]) -> int:
        return max((int(w.id) for w in workers if str(w.id).isdigit()), default=0) + 1

    def register_worker(self, national_id: str, name: str, department: str,
                        work_years: int = 0, personnel_code: Optional[str] = None) -> Worker:
        """Create a worker with no exams and no open referral.

        Raises:
            RepositoryError: Missing or invalid fields.
            DuplicateWorkerError: National ID already registered.
        """
        national_id = (national_id or '').strip()
        if not national_id or not (name or '').strip() or not (department or '').strip():
            raise RepositoryError("National ID, name and department are required")
        is_valid, error = validate_national_id(national_id)
        if not is_valid:
            raise RepositoryError(error)

        workers = self.load()
        if any(w.national_id == national_id for w in workers):
            raise DuplicateWorkerError(f"National ID {national_id} is already registered")

        worker = Worker(
            id=self._next_id(workers),
            national_id=national_id,
            name=name.strip(),
            department=department.strip(),
            work_years=int(work_years or 0),
            personnel_code=personnel_code or None,
        )
        self.save(workers + [worker])
        logger.info(f"Registered worker {worker.id}")
        return worker

    def import_workers(self, candidates: Iterable[Worker]) -> List[Worker]:
        """Add workers, skipping national IDs already stored or earlier in the batch.

        Imported workers get fresh ids and start with no open referral.
        """
        workers = self.load()
        seen = {w.national_id for w in workers}
        added = []
        for candidate in candidates:
            if not candidate.national_id or candidate.national_id in seen:
                continue
            seen.add(candidate.national_id)
            worker = candidate.copy(
                id=self._next_id(workers + added),
                referral_status=ReferralStatus.NONE
            )
            added.append(worker)

        if added:
            self.save(workers + added)
        logger.info(f"Imported {len(added)} workers")
        return added

    def update_worker(self, worker_id: int, name: Optional[str] = None,
                      department: Optional[str] = None, work_years: Optional[int] = None) -> Worker:
        """Edit descriptive fields. Identity and workflow fields are untouched."""
        changes: Dict[str, Any] = {}
        if name is not None:
            changes['name'] = name
        if department is not None:
            changes['department'] = department
        if work_years is not None:
            changes['work_years'] = int(work_years)
        return self._apply(worker_id, lambda w: w.copy(**changes))

    def _apply(self, worker_id: int, change) -> Worker:
        workers = self.load()
        for idx, worker in enumerate(workers):
            if worker.id == worker_id:
                updated = change(worker)
                workers[idx] = updated
                self.save(workers)
                return updated
        raise WorkerNotFoundError(f"Worker {worker_id} not found")

    def record_assessment(self, worker_id: int, assessment: HealthAssessment,
                          role: Optional[Role] = None) -> Worker:
        return self._apply(worker_id, lambda w: submit_assessment(w, assessment, role))

    def record_exam(self, national_id: str, exam: Exam, role: Optional[Role] = None) -> Worker:
        """Append an exam to the worker with ``national_id``."""
        worker = self.find_by_national_id(national_id)
        if worker is None:
            raise WorkerNotFoundError("Worker not found. Register the worker first.")
        return self._apply(worker.id, lambda w: submit_exam(w, exam, role))

    def set_referral_status(self, worker_id: int, status: ReferralStatus,
                            note: Optional[str] = None, role: Optional[Role] = None) -> Worker:
        return self._apply(worker_id, lambda w: update_referral_status(w, status, note, role))

    # --- last sync ----------------------------------------------------------

    def last_sync(self) -> Optional[str]:
        """Last successful sync time (plain ISO-8601, not encoded)."""
        return self.slots.read_plain(LAST_SYNC_SLOT)

    def set_last_sync(self, timestamp: Optional[str] = None) -> str:
        timestamp = timestamp or datetime.now(timezone.utc).isoformat()
        self.slots.write_plain(LAST_SYNC_SLOT, timestamp)
        return timestamp
