"""
Statistics Aggregator - status/term/year counts and the CSV export layout
"""
import csv
import io
from collections import Counter
from decimal import Decimal

from django.utils import timezone

from progress_reports.conf import get_setting

EXPORT_COLUMNS = [
    'Student Name',
    'Admission Number',
    'Teacher',
    'Subject',
    'Class',
    'Term',
    'Academic Year',
    'Total Assignments',
    'Submitted Assignments',
    'Average Score',
    'Status',
    'Teacher Remark',
    'Admin Notes',
    'Submitted At',
    'Reviewed At',
]


def summarize(reports):
    """
    Count reports per status, term and academic year.

    Pure function over already-loaded reports; an empty list gives
    ``{'total': 0, 'by_status': {}, 'by_term': {}, 'by_year': {}}``.
    """
    reports = list(reports)
    return {
        'total': len(reports),
        'by_status': dict(Counter(str(report.status) for report in reports)),
        'by_term': dict(Counter(report.term for report in reports)),
        'by_year': dict(Counter(str(report.academic_year) for report in reports)),
    }


def format_timestamp(value):
    if value is None:
        return ''
    if timezone.is_aware(value):
        value = timezone.localtime(value)
    return value.strftime(get_setting('EXPORT_DATETIME_FORMAT'))


def format_score(value):
    if value is None:
        return '0.00'
    return f"{Decimal(value):.2f}"


def export_row(report):
    return [
        report.student_name or '',
        report.admission_number or '',
        report.teacher_name or '',
        report.subject_name or '',
        report.class_name or '',
        report.term or '',
        report.academic_year or '',
        report.total_assignments or 0,
        report.submitted_assignments or 0,
        format_score(report.average_score),
        report.status or '',
        report.teacher_remark or '',
        report.admin_notes or '',
        format_timestamp(report.submitted_at),
        format_timestamp(report.reviewed_at),
    ]


def export_rows(reports):
    """Yield one value list per report, in EXPORT_COLUMNS order"""
    for report in reports:
        yield export_row(report)


def render_csv(reports):
    """
    Render reports as CSV text: an unquoted header line followed by one
    fully quoted line per report.
    """
    buffer = io.StringIO()
    buffer.write(','.join(EXPORT_COLUMNS) + '\n')
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator='\n')
    writer.writerows([str(value) for value in row] for row in export_rows(reports))
    return buffer.getvalue()


class ReportStatistics:
    """Store-backed reporting queries for admin dashboards and exports"""

    def __init__(self, store):
        self.store = store

    async def statistics(self, filters=None):
        return summarize(await self.store.find(filters))

    async def export_csv(self, filters=None):
        reports = await self.store.find(filters, ordering=['academic_year', 'term', 'class_name', 'student_name'])
        return render_csv(reports)

    async def academic_years(self):
        """Academic years that have reports, newest first; the current year when there are none"""
        years = await self.store.distinct_values('academic_year')
        if not years:
            return [str(timezone.now().year)]
        return sorted(years, reverse=True)

    async def subjects(self):
        return await self.store.distinct_values('subject_name')

    async def classes(self):
        return await self.store.distinct_values('class_name')
