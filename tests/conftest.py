from decimal import Decimal

import pytest
from django.utils import timezone

from progress_reports.models import ReportStatus, StudentReport
from progress_reports.services.registry import build_services


@pytest.fixture
def services():
    """Fresh service graph around the ORM-backed store"""
    return build_services(batch_size=10, timeout=5)


@pytest.fixture
def report_data():
    """Factory fixture for report submission payloads"""
    def _report_data(**overrides):
        data = {
            'student_id': 'S1',
            'student_name': 'Ada Obi',
            'admission_number': 'SLS/2025/001',
            'teacher_id': 'T1',
            'teacher_name': 'Mr. Bello',
            'subject_id': 'MATH',
            'subject_name': 'Mathematics',
            'class_id': 'JSS1A',
            'class_name': 'JSS 1A',
            'term': 1,
            'academic_year': 2025,
            'total_assignments': 10,
            'submitted_assignments': 8,
            'average_score': '76.50',
            'teacher_remark': 'Steady progress',
        }
        data.update(overrides)
        return data
    return _report_data


@pytest.fixture
def create_report(report_data):
    """Factory fixture inserting a report directly with a given status"""
    def _create_report(status=ReportStatus.SUBMITTED, **overrides):
        data = report_data(**overrides)
        data['academic_year'] = str(data['academic_year'])
        data['average_score'] = Decimal(str(data['average_score']))
        data['status'] = status
        if status != ReportStatus.DRAFT:
            data.setdefault('submitted_at', timezone.now())
        if status in (ReportStatus.APPROVED, ReportStatus.REJECTED):
            data.setdefault('reviewed_at', timezone.now())
        return StudentReport.objects.create(**data)
    return _create_report
