"""
Report Submission Service
Teacher-side entry points: save a draft, submit, resubmit after rejection
"""
import logging

from progress_reports.exceptions import DuplicateReport, InvalidTransition, ReportConflict
from progress_reports.models import ReportEvent, ReportStatus
from progress_reports.serializers import (
    ReportInputSerializer,
    ReportPayloadSerializer,
    validate_with,
)

from .guard import ReportKey
from .store import StaleReport

logger = logging.getLogger(__name__)

# Fields a teacher may change when correcting a rejected report
RESUBMIT_FIELDS = ('total_assignments', 'submitted_assignments', 'average_score', 'teacher_remark')


class ReportSubmissionService:
    """Runs the submission guard and hands the write to the lifecycle controller"""

    def __init__(self, store, guard, lifecycle):
        self.store = store
        self.guard = guard
        self.lifecycle = lifecycle

    async def submit(self, data, actor_id=None):
        """
        Submit a report for review.

        A draft for the same period is promoted, a rejected report for the
        same period is resubmitted with the new figures, otherwise a new
        report is created as submitted.

        Args:
            data: report fields (see ReportInputSerializer)
            actor_id: caller identity recorded in the status history

        Returns:
            StudentReport

        Raises:
            ReportValidationError: malformed input
            DuplicateReport: an active report already covers the period
        """
        record = validate_with(ReportInputSerializer, data)
        key = ReportKey.from_data(record)
        check = await self.guard.ensure_can_submit(key)

        if check.exists and check.existing_status == ReportStatus.DRAFT:
            draft = await self.store.get(check.existing_id)
            return await self._transition_or_duplicate(
                draft, ReportEvent.SUBMIT, key, changes=self._changes(record), actor_id=actor_id
            )

        if check.can_resubmit:
            rejected = await self.store.get(check.existing_id)
            return await self._transition_or_duplicate(
                rejected, ReportEvent.RESUBMIT, key, changes=self._changes(record), actor_id=actor_id
            )

        try:
            report = await self.lifecycle.create(record, ReportEvent.SUBMIT, actor_id=actor_id)
        except ReportConflict as e:
            # Lost a race with a concurrent submission for the same period
            duplicate = await self._duplicate_for(key)
            raise duplicate from e

        logger.info(f"Report {report.pk} submitted for student {report.student_id} ({report.subject_id}, T{report.term} {report.academic_year})")
        return report

    async def save_draft(self, data, actor_id=None):
        """
        Create or update the draft for a period without submitting it.

        Raises:
            DuplicateReport: the period already has an active report, or a
                rejected one that should be resubmitted instead
        """
        record = validate_with(ReportInputSerializer, data)
        key = ReportKey.from_data(record)
        check = await self.guard.ensure_can_submit(key)

        if check.exists and check.existing_status == ReportStatus.DRAFT:
            return await self.store.update(check.existing_id, self._changes(record))
        if check.can_resubmit:
            raise DuplicateReport(existing_id=check.existing_id, can_resubmit=True)

        return await self.lifecycle.create(record, ReportEvent.CREATE_DRAFT, actor_id=actor_id)

    async def submit_draft(self, report_id, actor_id=None):
        """Submit an existing draft unchanged"""
        draft = await self.store.get(report_id)
        key = ReportKey.of(draft)
        return await self._transition_or_duplicate(draft, ReportEvent.SUBMIT, key, actor_id=actor_id)

    async def resubmit(self, report_id, teacher_remark=None, changes=None, actor_id=None):
        """
        Correct a rejected report and send it back for review.

        Args:
            report_id: the rejected report
            teacher_remark: corrected remark; None keeps the current one
            changes: optional corrected figures (any of RESUBMIT_FIELDS)

        Raises:
            InvalidTransition: the report is not rejected
            ReportValidationError: corrected figures are invalid
        """
        report = await self.store.get(report_id)
        if not self.lifecycle.can_apply(report.status, ReportEvent.RESUBMIT):
            raise InvalidTransition(report.status, ReportEvent.RESUBMIT.value)

        update = {field: getattr(report, field) for field in RESUBMIT_FIELDS}
        update.update({k: v for k, v in (changes or {}).items() if k in RESUBMIT_FIELDS})
        if teacher_remark is not None:
            update['teacher_remark'] = teacher_remark
        update = validate_with(ReportPayloadSerializer, update)

        key = ReportKey.of(report)
        return await self._transition_or_duplicate(report, ReportEvent.RESUBMIT, key, changes=update, actor_id=actor_id)

    async def _transition_or_duplicate(self, report, event, key, changes=None, actor_id=None):
        try:
            return await self.lifecycle.transition(report, event, changes=changes, actor_id=actor_id)
        except InvalidTransition as e:
            if not isinstance(e.__cause__, StaleReport):
                raise
            # Another submission changed the report after we read it
            duplicate = await self._duplicate_for(key)
            if duplicate.existing_id is None:
                raise
            raise duplicate from e
        except ReportConflict as e:
            duplicate = await self._duplicate_for(key)
            raise duplicate from e

    async def _duplicate_for(self, key):
        check = await self.guard.check_exists(key)
        logger.warning(f"Concurrent submission for {key} blocked by report {check.existing_id}")
        return DuplicateReport(existing_id=check.existing_id if check.blocked else None, can_resubmit=False)

    @staticmethod
    def _changes(record):
        # Key fields identify the period and never change on an existing report
        return {
            field: value for field, value in record.items()
            if field not in ReportKey.__dataclass_fields__
        }
