import pytest
from asgiref.sync import async_to_sync
from django.db import OperationalError

from progress_reports.exceptions import (
    ReportConflict,
    ReportNotFound,
    ReportValidationError,
    StoreUnavailable,
)
from progress_reports.models import ReportStatus, StudentReport
from progress_reports.services.store import StaleReport, translate_store_errors


def stored_record(report_data, **overrides):
    record = report_data(**overrides)
    record['academic_year'] = str(record['academic_year'])
    record['status'] = overrides.get('status', ReportStatus.SUBMITTED)
    return record


@pytest.mark.django_db
@pytest.mark.reports
class TestReportStore:
    """Test the ORM-backed report store"""

    def test_insert_and_get(self, services, report_data):
        store = services['store']
        report = async_to_sync(store.insert)(stored_record(report_data), history={
            'event': 'submit', 'to_status': 'submitted', 'actor_id': 'T1',
        })

        fetched = async_to_sync(store.get)(report.pk)

        assert fetched.pk == report.pk
        assert len(async_to_sync(store.history)(report.pk)) == 1

    def test_second_active_insert_conflicts(self, services, report_data):
        """At most one active report per period"""
        store = services['store']
        async_to_sync(store.insert)(stored_record(report_data))

        with pytest.raises(ReportConflict):
            async_to_sync(store.insert)(stored_record(report_data, status=ReportStatus.APPROVED))

        assert StudentReport.objects.count() == 1

    def test_inactive_reports_do_not_conflict(self, services, report_data):
        store = services['store']
        async_to_sync(store.insert)(stored_record(report_data, status=ReportStatus.REJECTED))
        async_to_sync(store.insert)(stored_record(report_data, status=ReportStatus.REJECTED))
        async_to_sync(store.insert)(stored_record(report_data))

        assert StudentReport.objects.count() == 3

    def test_check_constraint_conflicts(self, services, report_data):
        with pytest.raises(ReportConflict):
            async_to_sync(services['store'].insert)(
                stored_record(report_data, total_assignments=2, submitted_assignments=3)
            )

    def test_get_missing(self, services):
        with pytest.raises(ReportNotFound) as exc_info:
            async_to_sync(services['store'].get)('00000000-0000-0000-0000-000000000000')

        assert exc_info.value.code == 'not_found'

    def test_update_refuses_status(self, services, create_report):
        report = create_report()

        with pytest.raises(ValueError):
            async_to_sync(services['store'].update)(report.pk, {'status': ReportStatus.APPROVED})

    def test_update_fields(self, services, create_report):
        report = create_report()

        updated = async_to_sync(services['store'].update)(report.pk, {'teacher_remark': 'Revised'})

        assert updated.teacher_remark == 'Revised'
        report.refresh_from_db()
        assert report.teacher_remark == 'Revised'
        assert report.status == ReportStatus.SUBMITTED

    def test_apply_transition_stale(self, services, create_report):
        report = create_report(status=ReportStatus.APPROVED)

        with pytest.raises(StaleReport) as exc_info:
            async_to_sync(services['store'].apply_transition)(
                report.pk, ReportStatus.SUBMITTED, {'status': ReportStatus.REJECTED},
                {'event': 'reject', 'from_status': 'submitted', 'to_status': 'rejected'}
            )

        assert exc_info.value.current_status == 'approved'
        assert async_to_sync(services['store'].history)(report.pk) == []

    def test_apply_transition_missing(self, services):
        with pytest.raises(ReportNotFound):
            async_to_sync(services['store'].apply_transition)(
                '00000000-0000-0000-0000-000000000000', ReportStatus.SUBMITTED,
                {'status': ReportStatus.APPROVED},
                {'event': 'approve', 'from_status': 'submitted', 'to_status': 'approved'}
            )

    def test_find_filters(self, services, create_report):
        create_report(student_id='S1', class_id='JSS1A')
        create_report(student_id='S2', class_id='JSS1B')
        create_report(student_id='S3', class_id='JSS1A', status=ReportStatus.DRAFT)
        find = async_to_sync(services['store'].find)

        assert len(find()) == 3
        assert len(find({'class_id': 'JSS1A'})) == 2
        assert len(find({'class_id': 'JSS1A', 'status': 'draft'})) == 1
        assert len(find({'class_id': None, 'subject_id': ''})) == 3

    def test_find_invalid_term(self, services):
        with pytest.raises(ReportValidationError):
            async_to_sync(services['store'].find)({'term': 9})

    def test_ping(self, services, create_report):
        create_report()

        assert async_to_sync(services['store'].ping)() == 1


@pytest.mark.reports
class TestErrorTranslation:
    """Test database error translation"""

    def test_operational_error(self):
        with pytest.raises(StoreUnavailable):
            with translate_store_errors('find'):
                raise OperationalError('database is locked')

    def test_other_errors_pass_through(self):
        with pytest.raises(KeyError):
            with translate_store_errors('find'):
                raise KeyError('x')
