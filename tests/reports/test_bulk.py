import asyncio
import time
from types import SimpleNamespace

import pytest
from asgiref.sync import async_to_sync

from progress_reports.exceptions import (
    ReportConflict,
    ReportPermissionDenied,
    StoreUnavailable,
)
from progress_reports.models import ReportStatus, StudentReport
from progress_reports.services.bulk import BulkSubmissionCoordinator, FailureReason
from progress_reports.services.registry import build_services
from progress_reports.services.store import ReportStore


class RecordingSubmission:
    """Submission stand-in that tracks how many items run at once"""

    def __init__(self, delay=0.01):
        self.delay = delay
        self.running = 0
        self.peak = 0
        self.events = []

    async def submit(self, data, actor_id=None):
        self.running += 1
        self.peak = max(self.peak, self.running)
        self.events.append(('start', data['student_id']))
        await asyncio.sleep(self.delay)
        self.running -= 1
        self.events.append(('end', data['student_id']))
        return SimpleNamespace(pk=f"report-{data['student_id']}")


class ScriptedSubmission:
    """Submission stand-in raising a configured error per student"""

    def __init__(self, errors):
        self.errors = errors

    async def submit(self, data, actor_id=None):
        error = self.errors.get(data['student_id'])
        if isinstance(error, float):
            await asyncio.sleep(error)
        elif error is not None:
            raise error
        return SimpleNamespace(pk=f"report-{data['student_id']}")


class SlowInsertStore(ReportStore):
    """Store whose inserts commit only after the caller has given up"""

    def __init__(self, delay):
        self.delay = delay

    def _insert(self, record, history):
        time.sleep(self.delay)
        return super()._insert(record, history)


class SlowFindStore(ReportStore):
    """Store whose first lookup is slow"""

    def __init__(self, delay):
        self.delay = delay
        self.calls = 0

    def _find(self, filters, ordering):
        self.calls += 1
        if self.calls == 1:
            time.sleep(self.delay)
        return super()._find(filters, ordering)


def student(index):
    return {'student_id': f'S{index}', 'student_name': f'Student {index}'}


@pytest.mark.bulk
class TestBatching:
    """Test batch scheduling with stand-in submissions"""

    def test_empty_list(self):
        bulk = BulkSubmissionCoordinator(RecordingSubmission(), batch_size=10, timeout=1)

        result = async_to_sync(bulk.submit_bulk)([])

        assert result.as_dict() == {
            'successful': [],
            'failed': [],
            'total_submitted': 0,
            'total_failed': 0,
        }

    def test_batches_run_one_after_another(self):
        """No item of a batch starts before the previous batch is done"""
        submission = RecordingSubmission()
        bulk = BulkSubmissionCoordinator(submission, batch_size=3, timeout=1)

        result = async_to_sync(bulk.submit_bulk)([student(i) for i in range(1, 8)])

        assert result.total_submitted == 7
        assert submission.peak == 3
        batches = [['S1', 'S2', 'S3'], ['S4', 'S5', 'S6'], ['S7']]
        for earlier, later in zip(batches, batches[1:]):
            last_end = max(submission.events.index(('end', s)) for s in earlier)
            first_start = min(submission.events.index(('start', s)) for s in later)
            assert last_end < first_start

    def test_results_keep_input_order(self):
        submission = ScriptedSubmission({'S1': 0.05, 'S3': ReportConflict()})
        bulk = BulkSubmissionCoordinator(submission, batch_size=4, timeout=1)

        result = async_to_sync(bulk.submit_bulk)([student(i) for i in range(1, 5)])

        assert [entry['student_name'] for entry in result.successful] == [
            'Student 1', 'Student 2', 'Student 4'
        ]
        assert result.successful[0] == {'student_name': 'Student 1', 'report_id': 'report-S1'}
        assert result.failed == [{
            'student_name': 'Student 3',
            'error': 'Report conflicts with an existing record',
            'reason': FailureReason.CONFLICT,
        }]

    def test_store_errors_are_transient(self):
        submission = ScriptedSubmission({'S2': StoreUnavailable(), 'S3': 0.5})
        bulk = BulkSubmissionCoordinator(submission, batch_size=10, timeout=0.05)

        result = async_to_sync(bulk.submit_bulk)([student(i) for i in range(1, 4)])

        assert result.total_submitted == 1
        assert [entry['reason'] for entry in result.failed] == ['transient', 'transient']
        assert 'did not respond' in result.failed[1]['error']

    def test_permission_errors_propagate(self):
        submission = ScriptedSubmission({'S2': ReportPermissionDenied()})
        bulk = BulkSubmissionCoordinator(submission, batch_size=10, timeout=1)

        with pytest.raises(ReportPermissionDenied):
            async_to_sync(bulk.submit_bulk)([student(1), student(2)])

    def test_student_name_fallback(self):
        submission = ScriptedSubmission({'S1': ReportConflict()})
        bulk = BulkSubmissionCoordinator(submission, batch_size=10, timeout=1)

        result = async_to_sync(bulk.submit_bulk)([{'student_id': 'S1'}])

        assert result.failed[0]['student_name'] == 'S1'

    def test_batch_size_must_be_positive(self):
        with pytest.raises(ValueError):
            BulkSubmissionCoordinator(RecordingSubmission(), batch_size=-1, timeout=1)


@pytest.mark.django_db
@pytest.mark.bulk
class TestBulkSubmission:
    """Test bulk submission against the store"""

    def test_duplicates_fail_individually(self, services, report_data, create_report):
        """12 reports where items 5 and 9 already have active reports"""
        existing = {
            'S5': create_report(student_id='S5', student_name='Student 5'),
            'S9': create_report(student_id='S9', student_name='Student 9', status=ReportStatus.APPROVED),
        }
        reports = [
            report_data(student_id=f'S{i}', student_name=f'Student {i}')
            for i in range(1, 13)
        ]

        result = async_to_sync(services['bulk'].submit_bulk)(reports, actor_id='T1')

        assert result.total_submitted == 10
        assert result.total_failed == 2
        assert len(result.successful) + len(result.failed) == len(reports)
        assert [entry['student_name'] for entry in result.failed] == ['Student 5', 'Student 9']
        for entry in result.failed:
            assert entry['reason'] == FailureReason.DUPLICATE
            assert entry['error'] == (
                'Report already exists for this student, subject, term, and academic year'
            )
        assert result.failed[0]['existing_id'] == str(existing['S5'].pk)
        assert StudentReport.objects.filter(status=ReportStatus.SUBMITTED).count() == 11

    def test_invalid_items_recorded(self, services, report_data):
        reports = [
            report_data(student_id='S1', student_name='Good'),
            report_data(student_id='S2', student_name='Bad', term=7),
        ]

        result = async_to_sync(services['bulk'].submit_bulk)(reports)

        assert result.total_submitted == 1
        assert result.failed[0]['student_name'] == 'Bad'
        assert result.failed[0]['reason'] == FailureReason.INVALID

    def test_rejected_item_is_resubmitted(self, services, report_data, create_report):
        rejected = create_report(status=ReportStatus.REJECTED)

        result = async_to_sync(services['bulk'].submit_bulk)([report_data()])

        assert result.successful == [{'student_name': 'Ada Obi', 'report_id': str(rejected.pk)}]
        rejected.refresh_from_db()
        assert rejected.status == ReportStatus.RESUBMITTED

    def test_same_period_twice_in_one_batch(self, services, report_data):
        """Only one of two identical items in a batch can win"""
        result = async_to_sync(services['bulk'].submit_bulk)([report_data(), report_data()])

        assert result.total_submitted == 1
        assert result.total_failed == 1
        assert result.failed[0]['reason'] == FailureReason.DUPLICATE
        assert StudentReport.objects.count() == 1

    @pytest.mark.parametrize('status', [ReportStatus.REJECTED, ReportStatus.DRAFT])
    def test_same_period_twice_over_existing_report(self, services, report_data, create_report, status):
        """Two items racing to resubmit or promote the same report"""
        existing = create_report(status=status)

        result = async_to_sync(services['bulk'].submit_bulk)([report_data(), report_data()])

        assert result.successful == [{'student_name': 'Ada Obi', 'report_id': str(existing.pk)}]
        assert result.failed == [{
            'student_name': 'Ada Obi',
            'error': 'Report already exists for this student, subject, term, and academic year',
            'reason': FailureReason.DUPLICATE,
            'existing_id': str(existing.pk),
        }]
        assert StudentReport.objects.count() == 1

    def test_timed_out_item_that_was_stored(self, report_data):
        """A write that finishes after the item timed out is still reported as stored"""
        services = build_services(store=SlowInsertStore(delay=0.3), batch_size=10, timeout=0.2)

        result = async_to_sync(services['bulk'].submit_bulk)([report_data()])

        report = StudentReport.objects.get()
        assert result.failed == []
        assert result.successful == [{'student_name': 'Ada Obi', 'report_id': str(report.pk)}]

    def test_timed_out_item_over_older_report(self, report_data, create_report):
        """An active report that predates the item is not claimed as its result"""
        existing = create_report()
        services = build_services(store=SlowFindStore(delay=0.3), batch_size=10, timeout=0.2)

        result = async_to_sync(services['bulk'].submit_bulk)([report_data()])

        assert result.successful == []
        assert result.failed[0]['reason'] == FailureReason.TRANSIENT
        assert result.failed[0]['existing_id'] == str(existing.pk)
