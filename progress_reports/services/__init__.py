from .bulk import BulkSubmissionCoordinator, BulkSubmissionResult
from .guard import GuardResult, ReportKey, SubmissionGuard
from .lifecycle import TRANSITIONS, LifecycleController
from .review import ReviewProcessor
from .statistics import EXPORT_COLUMNS, ReportStatistics, export_rows, render_csv, summarize
from .store import ReportStore, StaleReport
from .submission import ReportSubmissionService

__all__ = [
    'BulkSubmissionCoordinator',
    'BulkSubmissionResult',
    'GuardResult',
    'ReportKey',
    'SubmissionGuard',
    'TRANSITIONS',
    'LifecycleController',
    'ReviewProcessor',
    'EXPORT_COLUMNS',
    'ReportStatistics',
    'export_rows',
    'render_csv',
    'summarize',
    'ReportStore',
    'StaleReport',
    'ReportSubmissionService',
]
