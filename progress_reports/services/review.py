"""
Review Action Processor - administrator approve / reject
"""
import logging

from progress_reports.exceptions import ReportValidationError
from progress_reports.models import ReportEvent

logger = logging.getLogger(__name__)

REVIEW_ACTIONS = {
    'approve': ReportEvent.APPROVE,
    'reject': ReportEvent.REJECT,
}


class ReviewProcessor:
    """Applies admin review actions through the lifecycle controller"""

    def __init__(self, store, lifecycle):
        self.store = store
        self.lifecycle = lifecycle

    async def review(self, report_id, action, notes=None, actor_id=None):
        """
        Approve or reject a submitted or resubmitted report.

        Args:
            report_id: report to review
            action: 'approve' or 'reject'
            notes: admin notes, stored verbatim; None keeps existing notes
            actor_id: reviewing admin, recorded in the status history

        Returns:
            StudentReport: the reviewed report

        Raises:
            ReportValidationError: unknown action
            ReportNotFound: no report with this id
            InvalidTransition: the report is not awaiting review
        """
        event = REVIEW_ACTIONS.get(action)
        if event is None:
            raise ReportValidationError(errors={
                'action': [f"Unknown review action '{action}'. Use one of: {', '.join(REVIEW_ACTIONS)}"]
            })

        report = await self.store.get(report_id)
        reviewed = await self.lifecycle.transition(report, event, notes=notes, actor_id=actor_id)
        logger.info(f"Report {reviewed.pk} {reviewed.status} by {actor_id or 'admin'}")
        return reviewed

    async def approve(self, report_id, notes=None, actor_id=None):
        return await self.review(report_id, 'approve', notes=notes, actor_id=actor_id)

    async def reject(self, report_id, notes=None, actor_id=None):
        return await self.review(report_id, 'reject', notes=notes, actor_id=actor_id)

    async def delete(self, report_id, actor_id=None):
        """Administrative delete. Returns False when the report was already gone."""
        deleted = await self.store.delete(report_id)
        if deleted:
            logger.info(f"Report {report_id} deleted by {actor_id or 'admin'}")
        return deleted
