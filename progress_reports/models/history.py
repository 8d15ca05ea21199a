from django.db import models
from django.utils.translation import gettext_lazy as _

from .report import ReportStatus, StudentReport


class ReportEvent(models.TextChoices):
    CREATE_DRAFT = 'create_draft', _('Create Draft')
    SUBMIT = 'submit', _('Submit')
    APPROVE = 'approve', _('Approve')
    REJECT = 'reject', _('Reject')
    RESUBMIT = 'resubmit', _('Resubmit')


class ReportStatusHistory(models.Model):
    """Audit trail entry written for every applied status transition"""

    report = models.ForeignKey(
        StudentReport,
        on_delete=models.CASCADE,
        related_name='status_history',
        verbose_name=_('report')
    )
    event = models.CharField(_('event'), max_length=20, choices=ReportEvent.choices)
    from_status = models.CharField(
        _('from status'),
        max_length=20,
        choices=ReportStatus.choices,
        blank=True
    )
    to_status = models.CharField(_('to status'), max_length=20, choices=ReportStatus.choices)
    actor_id = models.CharField(_('actor id'), max_length=64, blank=True)
    notes = models.TextField(_('notes'), blank=True)
    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    class Meta:
        db_table = 'student_report_status_history'
        verbose_name = _('Report Status History')
        verbose_name_plural = _('Report Status History')
        ordering = ['created_at', 'id']

    def __str__(self):
        return f"{self.report_id}: {self.from_status or '-'} → {self.to_status} ({self.event})"
