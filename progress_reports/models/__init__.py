from .report import (
    ACTIVE_STATUSES,
    REPORT_KEY_FIELDS,
    TERM_CHOICES,
    ReportStatus,
    StudentReport,
)
from .history import ReportEvent, ReportStatusHistory

__all__ = [
    'ACTIVE_STATUSES',
    'REPORT_KEY_FIELDS',
    'TERM_CHOICES',
    'ReportStatus',
    'StudentReport',
    'ReportEvent',
    'ReportStatusHistory',
]
