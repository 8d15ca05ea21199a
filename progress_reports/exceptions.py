"""
Error kinds raised by the report workflow services.

Every error derives from ReportError so callers can catch the whole family,
and carries a short machine-readable ``code``.
"""


class ReportError(Exception):
    code = 'report_error'
    default_message = 'Report operation failed'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ReportValidationError(ReportError):
    """Malformed or missing report fields"""

    code = 'validation'
    default_message = 'Invalid report data'

    def __init__(self, message=None, errors=None):
        self.errors = errors or {}
        if message is None and self.errors:
            message = '; '.join(
                f"{field}: {', '.join(str(e) for e in messages)}"
                for field, messages in self.errors.items()
            )
        super().__init__(message)


class ReportConflict(ReportError):
    code = 'conflict'
    default_message = 'Report conflicts with an existing record'


class DuplicateReport(ReportConflict):
    """An active report already exists for the same student, subject, term, year and teacher"""

    code = 'duplicate'
    default_message = 'Report already exists for this student, subject, term, and academic year'

    def __init__(self, existing_id=None, can_resubmit=False, message=None):
        self.existing_id = existing_id
        self.can_resubmit = can_resubmit
        super().__init__(message)


class InvalidTransition(ReportConflict):
    code = 'invalid_transition'

    def __init__(self, current, event, message=None):
        self.current = current
        self.event = event
        if message is None:
            message = f"Cannot {event} a report with status '{current or 'none'}'"
        super().__init__(message)


class ReportNotFound(ReportError):
    code = 'not_found'
    default_message = 'Report not found'

    def __init__(self, report_id=None, message=None):
        self.report_id = report_id
        if message is None and report_id is not None:
            message = f"Report {report_id} not found"
        super().__init__(message)


class ReportPermissionDenied(ReportError):
    """Raised by the caller's authorization layer; passed through untouched"""

    code = 'permission_denied'
    default_message = 'You do not have permission to perform this action'


class StoreUnavailable(ReportError):
    """The report store could not be reached or timed out"""

    code = 'transient'
    default_message = 'Report store is temporarily unavailable'
