import logging

from django.dispatch import Signal, receiver

from .models import StudentReport

logger = logging.getLogger(__name__)

# Sent after every applied lifecycle transition.
# Kwargs: report, event, from_status, to_status, actor_id
report_status_changed = Signal()


@receiver(report_status_changed, sender=StudentReport)
def log_status_change(sender, report, event, from_status, to_status, actor_id=None, **kwargs):
    """
    Record every transition in the application log.
    Notification fan-out (email, push) hooks in here from other apps.
    """
    logger.info(
        f"Report {report.pk} {event}: {from_status or 'none'} -> {to_status}"
        f" (student={report.student_id}, subject={report.subject_id}, actor={actor_id or 'system'})"
    )
