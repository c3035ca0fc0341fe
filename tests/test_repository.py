"""
Integration tests for the worker repository.
"""

import json
import pytest
from unittest.mock import patch

from ohs.analysis.critical import is_critical
from ohs.backup import BackupError
from ohs.config import AUDIOMETRY_FREQUENCIES, LICENSE_SLOT, USERS_SLOT, WORKERS_SLOT
from ohs.models import FitnessStatus, ReferralStatus, Role, Worker
from ohs.referral import PermissionDenied
from ohs.repository import (
    BASELINE_WORKERS,
    DuplicateWorkerError,
    InvalidBackupError,
    RepositoryError,
    WorkerNotFoundError,
    baseline_workers,
    parse_backup_document,
)


class TestLoadSave:
    """Test cases for load and save."""

    def test_empty_store_seeds_baseline(self, repository, slots):
        workers = repository.load()
        assert [w.id for w in workers] == [1, 2]
        assert slots.read(WORKERS_SLOT) is not None

    @pytest.mark.parametrize("stored", [[1], [{"id": 1, "nationalId": "1", "exams": [1]}], {"id": 1}])
    def test_wrong_shape_seeds_baseline(self, repository, slots, stored):
        slots.write(WORKERS_SLOT, stored)
        assert [w.id for w in repository.load()] == [1, 2]

    def test_corrupted_slot_seeds_baseline(self, repository, store):
        store.put(WORKERS_SLOT, "deadbeef")
        assert repository.load() == baseline_workers()

    def test_malformed_records_seed_baseline(self, repository, slots):
        slots.write(WORKERS_SLOT, [{'name': 'no ids'}])
        assert repository.load() == baseline_workers()

    def test_save_then_load(self, repository, sample_worker):
        repository.save([sample_worker])
        assert repository.load() == [sample_worker]

    def test_stored_collection_roundtrips(self, repository, slots, store):
        """Decoding the stored slot yields exactly what was saved."""
        workers = repository.load()
        assert slots.codec.decode(store.get(WORKERS_SLOT)) == [w.to_dict() for w in workers]

    def test_baseline_matches_constant(self):
        assert [w.to_dict() for w in baseline_workers()] == BASELINE_WORKERS

    def test_baseline_audiograms_cover_all_frequencies(self):
        for worker in baseline_workers():
            hearing = worker.latest_exam.hearing
            assert len(hearing.left) == len(hearing.right) == len(AUDIOMETRY_FREQUENCIES)

    def test_baseline_copies_are_independent(self):
        first = baseline_workers()
        first[0].name = 'Changed'
        assert baseline_workers()[0].name == 'Ali Ahmadi'


class TestRegisterWorker:
    """Test cases for register_worker."""

    def test_register(self, repository):
        worker = repository.register_worker('5555555555', 'Hamid Nouri', 'Maintenance', 5)
        assert worker.id == 3
        assert worker.referral_status == ReferralStatus.NONE
        assert worker.exams == []
        assert repository.find_by_national_id('5555555555') == worker

    def test_duplicate_rejected_and_unchanged(self, repository):
        before = repository.load()
        with pytest.raises(DuplicateWorkerError):
            repository.register_worker('0123456789', 'Someone Else', 'Casting')
        assert repository.load() == before

    def test_id_is_above_existing_maximum(self, repository, sample_worker):
        repository.save([sample_worker.copy(id=40), sample_worker.copy(id=7, national_id='2')])
        assert repository.register_worker('3333', 'New', 'Dept').id == 41

    def test_missing_fields(self, repository):
        with pytest.raises(RepositoryError):
            repository.register_worker('1234', '', 'Dept')

    def test_invalid_national_id(self, repository):
        with pytest.raises(RepositoryError, match="numerical"):
            repository.register_worker('12AB', 'Name', 'Dept')

    def test_leading_zeros_kept(self, repository):
        worker = repository.register_worker('0000012', 'Name', 'Dept')
        assert worker.national_id == '0000012'


class TestImportWorkers:
    """Test cases for import_workers."""

    def test_skips_existing_and_batch_duplicates(self, repository):
        candidates = [
            Worker(id=0, national_id='0123456789', name='Dup Existing'),
            Worker(id=0, national_id='7777', name='First'),
            Worker(id=0, national_id='7777', name='Dup In Batch'),
            Worker(id=0, national_id='8888', name='Second'),
        ]
        added = repository.import_workers(candidates)
        assert [w.name for w in added] == ['First', 'Second']
        assert [w.id for w in added] == [3, 4]
        assert len(repository.load()) == 4

    def test_nothing_to_add(self, repository, slots, store):
        repository.load()
        before = store.get(WORKERS_SLOT)
        assert repository.import_workers([]) == []
        assert store.get(WORKERS_SLOT) == before

    def test_imported_workers_start_without_referral(self, repository):
        candidate = Worker(id=0, national_id='9999', name='X',
                           referral_status=ReferralStatus.WAITING_FOR_DOCTOR)
        added = repository.import_workers([candidate])
        assert added[0].referral_status == ReferralStatus.NONE


class TestUpdateAndLookup:
    """Test cases for get_worker, update_worker and find_by_national_id."""

    def test_get_worker(self, repository):
        assert repository.get_worker(2).name == 'Maryam Karimi'

    def test_get_missing_worker(self, repository):
        with pytest.raises(WorkerNotFoundError):
            repository.get_worker(99)

    def test_update_worker(self, repository):
        updated = repository.update_worker(2, name='Maryam K.', work_years=5)
        assert updated.name == 'Maryam K.'
        assert updated.work_years == 5
        assert updated.department == 'Quality Control'
        assert repository.get_worker(2) == updated

    def test_update_keeps_exams(self, repository):
        updated = repository.update_worker(1, department='Casting')
        assert len(updated.exams) == 1

    def test_find_strips_whitespace(self, repository):
        assert repository.find_by_national_id(' 9876543210 ').id == 2

    def test_find_missing(self, repository):
        assert repository.find_by_national_id('000') is None


class TestWorkflowHelpers:
    """Test cases for repository-level workflow helpers."""

    def test_record_exam_persists(self, repository, make_exam):
        updated = repository.record_exam('0123456789', make_exam(exam_id='new'))
        assert updated.referral_status == ReferralStatus.NONE
        stored = repository.get_worker(1)
        assert [e.id for e in stored.exams] == ['new', '101']

    def test_record_exam_unknown_worker(self, repository, make_exam):
        with pytest.raises(WorkerNotFoundError):
            repository.record_exam('404', make_exam())

    def test_record_exam_role(self, repository, make_exam):
        with pytest.raises(PermissionDenied):
            repository.record_exam('0123456789', make_exam(), role=Role.MANAGER)
        assert len(repository.get_worker(1).exams) == 1

    def test_record_assessment(self, repository, sample_assessment):
        updated = repository.record_assessment(2, sample_assessment)
        assert updated.referral_status == ReferralStatus.WAITING_FOR_DOCTOR
        assert repository.get_worker(2).health_assessment == sample_assessment

    def test_set_referral_status(self, repository, make_exam):
        repository.record_exam('9876543210', make_exam(status=FitnessStatus.UNFIT))
        assert repository.get_worker(2).referral_status == ReferralStatus.PENDING_SPECIALIST_RESULT
        updated = repository.set_referral_status(2, ReferralStatus.NONE, note='Cleared by ENT')
        assert updated.referral_status == ReferralStatus.NONE
        assert repository.get_worker(2).specialist_follow_up.doctor_note == 'Cleared by ENT'


class TestBackupRestore:
    """Test cases for backup_document, restore and factory_reset."""

    def test_backup_document_is_pretty_json(self, repository):
        document = repository.backup_document()
        assert document.startswith('[\n  {')
        assert json.loads(document) == [w.to_dict() for w in repository.load()]

    def test_backup_keeps_non_ascii(self, repository, sample_worker):
        repository.save([sample_worker.copy(name='علی')])
        assert 'علی' in repository.backup_document()

    def test_restore_replaces_collection(self, repository):
        restored = repository.restore('[{"id":1,"nationalId":"123"}]')
        assert len(restored) == 1
        loaded = repository.load()
        assert loaded == restored
        assert loaded[0].national_id == '123'

    def test_restore_roundtrip_of_backup(self, repository):
        repository.register_worker('4444', 'Backup Me', 'Dept')
        document = repository.backup_document()
        repository.factory_reset()
        repository.restore(document)
        assert repository.find_by_national_id('4444').name == 'Backup Me'

    def test_restore_bytes_with_bom(self, repository):
        restored = repository.restore('\ufeff[{"id":5,"nationalId":"55"}]'.encode('utf-8'))
        assert restored[0].id == 5

    def test_restore_skips_empty_entries(self, repository):
        restored = repository.restore('[{}, null, {"id":1,"nationalId":"1"}]')
        assert [w.id for w in restored] == [1]

    @pytest.mark.parametrize("document,message", [
        ('not json', "Failed to parse JSON"),
        ('{"id": 1, "nationalId": "1"}', "Invalid file format"),
        ('[{"id": 1}]', "Invalid file format"),
        ('[{"nationalId": "1"}]', "Invalid file format"),
        ('[1, 2]', "Invalid file format"),
        ('[{"id": 1, "nationalId": "1", "referralStatus": "unknown"}]', "Invalid file format"),
        ('[{"id": 1, "nationalId": "1", "exams": [1]}]', "Invalid file format"),
        ('[{"id": 1, "nationalId": "1", "exams": {"id": "e"}}]', "Invalid file format"),
        ('[{"id": 1, "nationalId": "1", "exams": [{"id": "e", "hearing": [1, 2]}]}]', "Invalid file format"),
        ('[{"id": 1, "nationalId": "1", "exams": [{"id": "e", "hearing": {"left": [null, "x"]}}]}]',
         "Invalid file format"),
        ('[{"id": 1, "nationalId": "1", "exams": [{"id": "e", "spirometry": "ok"}]}]', "Invalid file format"),
        ('[{"id": 1, "nationalId": "1", "healthAssessment": "yes"}]', "Invalid file format"),
        ('[{"id": 1, "nationalId": "1", "specialistFollowUp": [1]}]', "Invalid file format"),
        ('[{"id": 1, "nationalId": "1"}, {"id": 1, "nationalId": "2"}]', "Duplicate worker id"),
    ])
    def test_invalid_documents_leave_state_unchanged(self, repository, document, message):
        before = repository.load()
        with pytest.raises(InvalidBackupError, match=message):
            repository.restore(document)
        assert repository.load() == before

    def test_numeric_string_thresholds_accepted(self, repository):
        restored = repository.restore(
            '[{"id":1,"nationalId":"1","exams":[{"id":"e","hearing":{"left":["40","45"],"right":[10]}}]}]'
        )
        assert restored[0].latest_exam.hearing.left == (40.0, 45.0)
        assert is_critical(repository.load()[0])

    def test_duplicate_national_ids_rejected(self):
        with pytest.raises(InvalidBackupError, match="Duplicate"):
            parse_backup_document('[{"id":1,"nationalId":"1"},{"id":2,"nationalId":"1"}]')

    def test_unknown_keys_survive_restore(self, repository):
        repository.restore('[{"id":1,"nationalId":"1","legacyFlag":true}]')
        assert repository.load()[0].to_dict()['legacyFlag'] is True

    def test_factory_reset_is_deterministic(self, repository):
        repository.register_worker('4444', 'Extra', 'Dept')
        repository.restore('[{"id":9,"nationalId":"9"}]')
        assert repository.factory_reset() == baseline_workers()
        assert repository.load() == baseline_workers()

    def test_restore_backs_up_previous_records(self, repository, backup_dir):
        repository.register_worker('4444', 'Backup Me', 'Dept')
        repository.restore('[{"id":9,"nationalId":"9"}]')
        backups = list(backup_dir.glob("*_pre_restore.json"))
        assert len(backups) == 1
        saved = json.loads(backups[0].read_text(encoding='utf-8'))
        assert '4444' in [item['nationalId'] for item in saved]

    def test_rejected_restore_writes_no_backup(self, repository, backup_dir):
        repository.load()
        with pytest.raises(InvalidBackupError):
            repository.restore('not json')
        assert not backup_dir.exists() or not list(backup_dir.iterdir())

    def test_factory_reset_backs_up_previous_records(self, repository, backup_dir):
        repository.load()
        repository.factory_reset()
        assert len(list(backup_dir.glob("*_pre_reset.json"))) == 1

    def test_restore_proceeds_when_backup_fails(self, repository):
        repository.load()
        with patch('ohs.backup.create_backup', return_value=None):
            restored = repository.restore('[{"id":9,"nationalId":"9"}]')
        assert repository.load() == restored

    def test_factory_reset_keeps_users_and_license(self, repository, slots):
        slots.write(USERS_SLOT, [{'username': 'x'}])
        slots.write(LICENSE_SLOT, {'type': 'full'})
        repository.factory_reset()
        assert slots.read(USERS_SLOT) == [{'username': 'x'}]
        assert slots.read(LICENSE_SLOT) == {'type': 'full'}

    def test_write_backup_to_path(self, repository, tmp_path):
        path = repository.write_backup(tmp_path / "export.json")
        assert json.loads((tmp_path / "export.json").read_text(encoding='utf-8'))[0]['id'] == 1
        assert path.endswith("export.json")

    def test_write_backup_failure(self, repository, tmp_path):
        with pytest.raises(BackupError):
            repository.write_backup(tmp_path / "missing_dir" / "export.json")

    def test_backup_to_directory_and_restore_file(self, repository, tmp_path):
        with patch('ohs.backup.BACKUP_DIR', str(tmp_path / "backups")):
            path = repository.backup(reason="manual")
        assert path is not None
        repository.restore('[{"id":9,"nationalId":"9"}]')
        restored = repository.restore_file(path)
        assert [w.id for w in restored] == [1, 2]

    def test_restore_file_missing(self, repository, tmp_path):
        with pytest.raises(InvalidBackupError, match="not found"):
            repository.restore_file(str(tmp_path / "nope.json"))


class TestLastSync:
    """Test cases for last-sync bookkeeping."""

    def test_initially_none(self, repository):
        assert repository.last_sync() is None

    def test_stored_plain(self, repository, store):
        repository.set_last_sync('2025-06-01T12:00:00+00:00')
        assert repository.last_sync() == '2025-06-01T12:00:00+00:00'
        assert store.get('ohs_last_sync_time') == '2025-06-01T12:00:00+00:00'

    def test_default_timestamp(self, repository):
        assert repository.set_last_sync() == repository.last_sync()
