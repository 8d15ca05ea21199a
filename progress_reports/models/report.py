import uuid

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F, Q
from django.utils.translation import gettext_lazy as _


class ReportStatus(models.TextChoices):
    DRAFT = 'draft', _('Draft')
    SUBMITTED = 'submitted', _('Submitted')
    RESUBMITTED = 'resubmitted', _('Resubmitted')
    APPROVED = 'approved', _('Approved')
    REJECTED = 'rejected', _('Rejected')


# Statuses that block another submission for the same period
ACTIVE_STATUSES = (
    ReportStatus.SUBMITTED,
    ReportStatus.RESUBMITTED,
    ReportStatus.APPROVED,
)

TERM_CHOICES = [
    (1, _('1st Term')),
    (2, _('2nd Term')),
    (3, _('3rd Term')),
]

# Fields that identify one reporting period for a student
REPORT_KEY_FIELDS = ('student_id', 'subject_id', 'term', 'academic_year', 'teacher_id')


class StudentReport(models.Model):
    """
    Per-student, per-subject, per-term progress report submitted by a teacher.
    Status flow: draft → submitted → approved / rejected → resubmitted
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Students, teachers, subjects and classes are owned by other services,
    # so only their identifiers are stored here.
    student_id = models.CharField(_('student id'), max_length=64, db_index=True)
    teacher_id = models.CharField(_('teacher id'), max_length=64, db_index=True)
    subject_id = models.CharField(_('subject id'), max_length=64)
    class_id = models.CharField(_('class id'), max_length=64, blank=True)
    term = models.PositiveSmallIntegerField(_('term'), choices=TERM_CHOICES)
    academic_year = models.CharField(_('academic year'), max_length=9)

    # Display snapshot taken at submission time
    student_name = models.CharField(_('student name'), max_length=200, blank=True)
    admission_number = models.CharField(_('admission number'), max_length=50, blank=True)
    teacher_name = models.CharField(_('teacher name'), max_length=200, blank=True)
    subject_name = models.CharField(_('subject name'), max_length=200, blank=True)
    class_name = models.CharField(_('class name'), max_length=100, blank=True)

    total_assignments = models.PositiveIntegerField(_('total assignments'), default=0)
    submitted_assignments = models.PositiveIntegerField(_('submitted assignments'), default=0)
    average_score = models.DecimalField(
        _('average score'),
        max_digits=5,
        decimal_places=2,
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    teacher_remark = models.TextField(_('teacher remark'), blank=True)
    admin_notes = models.TextField(_('admin notes'), blank=True)

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=ReportStatus.choices,
        default=ReportStatus.DRAFT
    )

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    submitted_at = models.DateTimeField(_('submitted at'), null=True, blank=True)
    reviewed_at = models.DateTimeField(_('reviewed at'), null=True, blank=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        db_table = 'student_reports'
        verbose_name = _('Student Report')
        verbose_name_plural = _('Student Reports')
        ordering = ['-submitted_at', '-created_at']
        indexes = [
            models.Index(fields=['academic_year', 'term'], name='student_report_period_idx'),
            models.Index(fields=['status'], name='student_report_status_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=list(REPORT_KEY_FIELDS),
                condition=Q(status__in=[status.value for status in ACTIVE_STATUSES]),
                name='unique_active_report_per_period'
            ),
            models.CheckConstraint(
                condition=Q(submitted_assignments__lte=F('total_assignments')),
                name='report_submitted_lte_total'
            ),
            models.CheckConstraint(
                condition=Q(term__in=[1, 2, 3]),
                name='report_term_valid'
            ),
            models.CheckConstraint(
                condition=Q(average_score__gte=0) & Q(average_score__lte=100),
                name='report_average_score_range'
            ),
        ]

    def __str__(self):
        return f"{self.student_name or self.student_id} - {self.subject_name or self.subject_id} (T{self.term} {self.academic_year}, {self.status})"

    @property
    def is_active(self):
        return self.status in ACTIVE_STATUSES

    @property
    def key(self):
        return tuple(getattr(self, field) for field in REPORT_KEY_FIELDS)
