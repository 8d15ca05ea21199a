"""
Bulk Submission Coordinator

Submits many reports in fixed-size batches. Items inside a batch run
concurrently; a batch finishes before the next one starts. Each item either
ends up in ``successful`` or ``failed`` - one item's failure never stops or
undoes its siblings.
"""
import asyncio
import logging
from dataclasses import dataclass, field

from django.utils import timezone

from progress_reports.conf import get_setting
from progress_reports.exceptions import (
    DuplicateReport,
    ReportConflict,
    ReportError,
    ReportValidationError,
    StoreUnavailable,
)

logger = logging.getLogger(__name__)


class FailureReason:
    DUPLICATE = 'duplicate'
    CONFLICT = 'conflict'
    INVALID = 'invalid'
    TRANSIENT = 'transient'


@dataclass
class BulkSubmissionResult:
    successful: list = field(default_factory=list)
    failed: list = field(default_factory=list)

    @property
    def total_submitted(self):
        return len(self.successful)

    @property
    def total_failed(self):
        return len(self.failed)

    def as_dict(self):
        return {
            'successful': list(self.successful),
            'failed': list(self.failed),
            'total_submitted': self.total_submitted,
            'total_failed': self.total_failed,
        }


class BulkSubmissionCoordinator:
    """Best-effort batched submission with a per-item result ledger"""

    def __init__(self, submission, batch_size=None, timeout=None, guard=None):
        self.submission = submission
        # Used to find out what a timed-out item actually left in the store
        self.guard = guard
        self.batch_size = batch_size or get_setting('BULK_BATCH_SIZE')
        self.timeout = timeout if timeout is not None else get_setting('STORE_TIMEOUT')
        if self.batch_size < 1:
            raise ValueError("Bulk batch size must be at least 1")

    async def submit_bulk(self, reports, actor_id=None) -> BulkSubmissionResult:
        """
        Submit every report in ``reports``.

        Args:
            reports: list of report input mappings (see ReportInputSerializer)
            actor_id: caller identity recorded in the status history

        Returns:
            BulkSubmissionResult: ``successful`` entries hold student_name and
            report_id, ``failed`` entries hold student_name, error and reason.
            Both lists keep input order and together cover every input item.
        """
        reports = list(reports)
        outcomes = [None] * len(reports)

        for start in range(0, len(reports), self.batch_size):
            batch = range(start, min(start + self.batch_size, len(reports)))
            results = await asyncio.gather(*(
                self._submit_one(reports[index], actor_id) for index in batch
            ))
            for index, outcome in zip(batch, results):
                outcomes[index] = outcome

        result = BulkSubmissionResult()
        for succeeded, entry in outcomes:
            (result.successful if succeeded else result.failed).append(entry)

        logger.info(
            f"Bulk submission finished: {result.total_submitted} submitted, "
            f"{result.total_failed} failed of {len(reports)}"
        )
        return result

    async def _submit_one(self, data, actor_id):
        student_name = self._student_name(data)
        started = timezone.now()
        try:
            report = await asyncio.wait_for(
                self.submission.submit(data, actor_id=actor_id),
                timeout=self.timeout
            )
        except DuplicateReport as e:
            return False, self._failure(student_name, e.message, FailureReason.DUPLICATE, existing_id=e.existing_id)
        except ReportConflict as e:
            return False, self._failure(student_name, e.message, FailureReason.CONFLICT)
        except ReportValidationError as e:
            return False, self._failure(student_name, e.message, FailureReason.INVALID)
        except StoreUnavailable as e:
            return False, self._failure(student_name, e.message, FailureReason.TRANSIENT)
        except asyncio.TimeoutError:
            # The store call is not cancelled with the await and may still commit
            existing_id, stored_by_item = await self._recheck(data, started)
            if stored_by_item:
                logger.warning(f"Bulk submission for {student_name} timed out but report {existing_id} was stored")
                return True, {'student_name': student_name, 'report_id': existing_id}
            return False, self._failure(
                student_name,
                f"Report store did not respond within {self.timeout}s",
                FailureReason.TRANSIENT,
                existing_id=existing_id
            )

        return True, {'student_name': student_name, 'report_id': str(report.pk)}

    async def _recheck(self, data, started):
        """
        Look up the active report covering a timed-out item's period.

        Returns:
            tuple: (report id or None, whether it was submitted after the
            item started)
        """
        if self.guard is None:
            return None, False
        try:
            check = await asyncio.wait_for(self.guard.check_exists(data), timeout=self.timeout)
            if not check.blocked:
                return None, False
            report = await asyncio.wait_for(self.guard.store.get(check.existing_id), timeout=self.timeout)
        except (ReportError, asyncio.TimeoutError) as e:
            logger.warning(f"Could not re-check timed-out bulk item: {str(e) or 'timed out'}")
            return None, False
        return check.existing_id, bool(report.submitted_at and report.submitted_at >= started)

    @staticmethod
    def _failure(student_name, error, reason, existing_id=None):
        logger.warning(f"Bulk submission failed for {student_name} ({reason}): {error}")
        entry = {'student_name': student_name, 'error': error, 'reason': reason}
        if existing_id:
            entry['existing_id'] = existing_id
        return entry

    @staticmethod
    def _student_name(data):
        try:
            return data.get('student_name') or data.get('student_id') or 'Unknown student'
        except AttributeError:
            return 'Unknown student'
