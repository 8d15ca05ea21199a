"""
Lifecycle Controller - the only component that changes a report's status.

    (none)       --create_draft--> draft
    (none)/draft --submit-------> submitted
    submitted    --approve------> approved
    submitted    --reject-------> rejected
    rejected     --resubmit-----> resubmitted
    resubmitted  --approve------> approved
    resubmitted  --reject-------> rejected

Anything else is an InvalidTransition.
"""
import logging

from django.core.exceptions import ImproperlyConfigured
from django.utils import timezone

from progress_reports.exceptions import InvalidTransition, ReportValidationError
from progress_reports.models import ReportEvent, ReportStatus, StudentReport
from progress_reports.signals import report_status_changed

from .store import StaleReport

logger = logging.getLogger(__name__)


TRANSITIONS = {
    (None, ReportEvent.CREATE_DRAFT): ReportStatus.DRAFT,
    (None, ReportEvent.SUBMIT): ReportStatus.SUBMITTED,
    (ReportStatus.DRAFT, ReportEvent.SUBMIT): ReportStatus.SUBMITTED,
    (ReportStatus.SUBMITTED, ReportEvent.APPROVE): ReportStatus.APPROVED,
    (ReportStatus.SUBMITTED, ReportEvent.REJECT): ReportStatus.REJECTED,
    (ReportStatus.REJECTED, ReportEvent.RESUBMIT): ReportStatus.RESUBMITTED,
    (ReportStatus.RESUBMITTED, ReportEvent.APPROVE): ReportStatus.APPROVED,
    (ReportStatus.RESUBMITTED, ReportEvent.REJECT): ReportStatus.REJECTED,
}

# Timestamps each event sets to now, and the ones it clears
STAMPED_FIELDS = {
    ReportEvent.CREATE_DRAFT: ((), ()),
    ReportEvent.SUBMIT: (('submitted_at',), ()),
    ReportEvent.RESUBMIT: (('submitted_at',), ('reviewed_at',)),
    ReportEvent.APPROVE: (('reviewed_at',), ()),
    ReportEvent.REJECT: (('reviewed_at',), ()),
}

REVIEW_EVENTS = (ReportEvent.APPROVE, ReportEvent.REJECT)


def _as_status(value):
    if value in (None, ''):
        return None
    try:
        return ReportStatus(value)
    except ValueError:
        raise ReportValidationError(errors={'status': [f"Unknown report status: {value}"]})


def _as_event(value):
    try:
        return ReportEvent(value)
    except ValueError:
        raise ReportValidationError(errors={'event': [f"Unknown report event: {value}"]})


class LifecycleController:
    """Applies the transition table and stamps lifecycle timestamps"""

    def __init__(self, store, transitions=None):
        self.store = store
        self.transitions = dict(TRANSITIONS if transitions is None else transitions)
        self._check_transitions()

    def _check_transitions(self):
        reachable = set()
        for (source, event), target in self.transitions.items():
            if source is not None and source not in ReportStatus.values:
                raise ImproperlyConfigured(f"Unknown source status in transition table: {source}")
            if event not in ReportEvent.values or target not in ReportStatus.values:
                raise ImproperlyConfigured(f"Invalid transition {source} --{event}--> {target}")
            if event not in STAMPED_FIELDS:
                raise ImproperlyConfigured(f"No timestamp rule for event: {event}")
            reachable.add(ReportStatus(target))
        unreachable = set(ReportStatus) - reachable
        if unreachable:
            raise ImproperlyConfigured(
                f"Statuses unreachable in transition table: {', '.join(sorted(unreachable))}"
            )

    def next_status(self, current, event) -> ReportStatus:
        """
        Return the status ``event`` leads to from ``current``.

        Raises:
            InvalidTransition: the pair is not in the transition table
        """
        current = _as_status(current)
        event = _as_event(event)
        try:
            return self.transitions[(current, event)]
        except KeyError:
            raise InvalidTransition(current.value if current else None, event.value)

    def can_apply(self, current, event) -> bool:
        return (_as_status(current), _as_event(event)) in self.transitions

    def _stamps(self, event, now, notes=None):
        set_now, clear = STAMPED_FIELDS[event]
        stamps = {field: now for field in set_now}
        stamps.update({field: None for field in clear})
        if event in REVIEW_EVENTS and notes is not None:
            stamps['admin_notes'] = notes
        return stamps

    async def create(self, record, event=ReportEvent.SUBMIT, actor_id=None) -> StudentReport:
        """
        Insert a new report entering the lifecycle as draft or submitted.

        Args:
            record: validated report fields (no status or timestamps)
            event: ReportEvent.CREATE_DRAFT or ReportEvent.SUBMIT
            actor_id: caller identity recorded in the history

        Raises:
            InvalidTransition: event cannot start a lifecycle
            ReportConflict: an active report holds the same period key
        """
        event = _as_event(event)
        status = self.next_status(None, event)
        fields = dict(record)
        fields.update(self._stamps(event, timezone.now()))
        fields['status'] = status

        report = await self.store.insert(fields, history={
            'event': event,
            'from_status': '',
            'to_status': status,
            'actor_id': actor_id or '',
        })
        await self._announce(report, event, None, status, actor_id)
        return report

    async def transition(self, report, event, changes=None, notes=None, actor_id=None) -> StudentReport:
        """
        Apply ``event`` to an existing report.

        Args:
            report: the report as last read by the caller
            event: ReportEvent to apply
            changes: extra non-status fields written with the transition
            notes: admin notes for review events; also kept in the history
            actor_id: caller identity recorded in the history

        Returns:
            StudentReport: the updated report

        Raises:
            InvalidTransition: not allowed from the current status, including
                when another caller changed the status first
        """
        event = _as_event(event)
        current = _as_status(report.status)
        status = self.next_status(current, event)

        patch = dict(changes or {})
        if 'status' in patch:
            raise ValueError("Status is set by the lifecycle controller, not by changes")
        now = timezone.now()
        patch.update(self._stamps(event, now, notes))
        patch['status'] = status
        patch['updated_at'] = now

        try:
            updated = await self.store.apply_transition(report.pk, current, patch, {
                'event': event,
                'from_status': current or '',
                'to_status': status,
                'actor_id': actor_id or '',
                'notes': notes or '',
            })
        except StaleReport as e:
            raise InvalidTransition(e.current_status, event.value) from e

        await self._announce(updated, event, current, status, actor_id)
        return updated

    async def _announce(self, report, event, from_status, to_status, actor_id):
        await report_status_changed.asend(
            sender=StudentReport,
            report=report,
            event=event.value,
            from_status=from_status.value if from_status else None,
            to_status=to_status.value,
            actor_id=actor_id,
        )
