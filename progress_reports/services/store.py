"""
Report Store - typed async access to persisted report records.

The store holds no business rules: it reads, writes and translates database
errors into report error kinds. Status changes go through apply_transition,
which only the lifecycle controller calls.
"""
import logging
from contextlib import contextmanager

from asgiref.sync import sync_to_async
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, InterfaceError, OperationalError, transaction

from progress_reports.exceptions import (
    ReportConflict,
    ReportNotFound,
    ReportValidationError,
    StoreUnavailable,
)
from progress_reports.filters import ReportFilter
from progress_reports.models import ReportStatusHistory, StudentReport

logger = logging.getLogger(__name__)


class StaleReport(ReportConflict):
    """The report's status changed between read and conditional write"""

    code = 'stale'

    def __init__(self, report_id, expected_status, current_status):
        self.report_id = report_id
        self.expected_status = expected_status
        self.current_status = current_status
        super().__init__(
            f"Report {report_id} is '{current_status}', expected '{expected_status}'"
        )


@contextmanager
def translate_store_errors(operation):
    try:
        yield
    except IntegrityError as e:
        raise ReportConflict(f"{operation} violates a report constraint: {e}") from e
    except (OperationalError, InterfaceError) as e:
        logger.error(f"Report store unavailable during {operation}: {str(e)}", exc_info=True)
        raise StoreUnavailable(f"Report store unavailable during {operation}") from e


class ReportStore:
    """Django ORM backed report store"""

    model = StudentReport
    history_model = ReportStatusHistory

    # Fields the store itself maintains
    PROTECTED_FIELDS = {'id', 'status', 'created_at', 'updated_at'}

    async def find(self, filters=None, ordering=None):
        """
        Return reports matching ``filters`` (see ReportFilter), AND-combined.

        Args:
            filters: dict of optional filter values; None values are ignored
            ordering: optional list of order_by expressions

        Returns:
            list[StudentReport]
        """
        return await sync_to_async(self._find)(filters, ordering)

    def _find(self, filters, ordering):
        data = {key: value for key, value in (filters or {}).items() if value not in (None, '')}
        filterset = ReportFilter(data=data, queryset=self.model.objects.all())
        if not filterset.is_valid():
            raise ReportValidationError(errors={
                field: [str(message) for message in messages]
                for field, messages in filterset.errors.items()
            })
        queryset = filterset.qs
        if ordering:
            queryset = queryset.order_by(*ordering)
        with translate_store_errors('find'):
            return list(queryset)

    async def get(self, report_id):
        return await sync_to_async(self._get)(report_id)

    def _get(self, report_id):
        with translate_store_errors('get'):
            try:
                return self.model.objects.get(pk=report_id)
            # Malformed ids fail UUID conversion before reaching the database
            except (self.model.DoesNotExist, DjangoValidationError, ValueError):
                raise ReportNotFound(report_id)

    async def insert(self, record, history=None):
        """
        Insert a new report, optionally with its first history entry.

        Raises:
            ReportConflict: an active report already holds the same period key
        """
        return await sync_to_async(self._insert)(record, history)

    def _insert(self, record, history):
        with translate_store_errors('insert'):
            with transaction.atomic():
                report = self.model.objects.create(**record)
                if history:
                    self.history_model.objects.create(report=report, **history)
        return report

    async def update(self, report_id, patch):
        """Update non-status fields of a report"""
        return await sync_to_async(self._update)(report_id, patch)

    def _update(self, report_id, patch):
        protected = self.PROTECTED_FIELDS.intersection(patch)
        if protected:
            raise ValueError(f"Store update cannot change: {', '.join(sorted(protected))}")
        report = self._get(report_id)
        for field, value in patch.items():
            setattr(report, field, value)
        with translate_store_errors('update'):
            with transaction.atomic():
                report.save(update_fields=list(patch) + ['updated_at'])
        return report

    async def apply_transition(self, report_id, expected_status, changes, history):
        """
        Conditionally write a status change: the row is only updated when it
        still has ``expected_status``. The history entry is written in the
        same transaction.

        Raises:
            ReportNotFound: no report with this id
            StaleReport: the report no longer has ``expected_status``
            ReportConflict: the new status violates the active-report constraint
        """
        return await sync_to_async(self._apply_transition)(report_id, expected_status, changes, history)

    def _apply_transition(self, report_id, expected_status, changes, history):
        with translate_store_errors('transition'):
            with transaction.atomic():
                updated = self.model.objects.filter(
                    pk=report_id,
                    status=expected_status
                ).update(**changes)
                if not updated:
                    current = self.model.objects.filter(pk=report_id).values_list('status', flat=True).first()
                    if current is None:
                        raise ReportNotFound(report_id)
                    raise StaleReport(report_id, expected_status, current)
                report = self.model.objects.get(pk=report_id)
                self.history_model.objects.create(report=report, **history)
        return report

    async def delete(self, report_id):
        """Delete a report. Deleting a missing report is a no-op."""
        return await sync_to_async(self._delete)(report_id)

    def _delete(self, report_id):
        with translate_store_errors('delete'):
            try:
                deleted, _ = self.model.objects.filter(pk=report_id).delete()
            except DjangoValidationError:
                return False
        return deleted > 0

    async def history(self, report_id):
        return await sync_to_async(self._history)(report_id)

    def _history(self, report_id):
        with translate_store_errors('history'):
            return list(self.history_model.objects.filter(report_id=report_id))

    async def distinct_values(self, field):
        """Distinct non-empty values of a report column"""
        return await sync_to_async(self._distinct_values)(field)

    def _distinct_values(self, field):
        with translate_store_errors('distinct'):
            values = (
                self.model.objects.exclude(**{f"{field}__isnull": True})
                .exclude(**{field: ''})
                .order_by(field)
                .values_list(field, flat=True)
                .distinct()
            )
            return list(values)

    async def ping(self):
        """Cheap connectivity check; returns the number of stored reports"""
        return await sync_to_async(self._ping)()

    def _ping(self):
        with translate_store_errors('ping'):
            return self.model.objects.count()
