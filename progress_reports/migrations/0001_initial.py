import django.core.validators
import django.db.models.deletion
import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='StudentReport',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('student_id', models.CharField(db_index=True, max_length=64, verbose_name='student id')),
                ('teacher_id', models.CharField(db_index=True, max_length=64, verbose_name='teacher id')),
                ('subject_id', models.CharField(max_length=64, verbose_name='subject id')),
                ('class_id', models.CharField(blank=True, max_length=64, verbose_name='class id')),
                ('term', models.PositiveSmallIntegerField(choices=[(1, '1st Term'), (2, '2nd Term'), (3, '3rd Term')], verbose_name='term')),
                ('academic_year', models.CharField(max_length=9, verbose_name='academic year')),
                ('student_name', models.CharField(blank=True, max_length=200, verbose_name='student name')),
                ('admission_number', models.CharField(blank=True, max_length=50, verbose_name='admission number')),
                ('teacher_name', models.CharField(blank=True, max_length=200, verbose_name='teacher name')),
                ('subject_name', models.CharField(blank=True, max_length=200, verbose_name='subject name')),
                ('class_name', models.CharField(blank=True, max_length=100, verbose_name='class name')),
                ('total_assignments', models.PositiveIntegerField(default=0, verbose_name='total assignments')),
                ('submitted_assignments', models.PositiveIntegerField(default=0, verbose_name='submitted assignments')),
                ('average_score', models.DecimalField(decimal_places=2, default=0, max_digits=5, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)], verbose_name='average score')),
                ('teacher_remark', models.TextField(blank=True, verbose_name='teacher remark')),
                ('admin_notes', models.TextField(blank=True, verbose_name='admin notes')),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('submitted', 'Submitted'), ('resubmitted', 'Resubmitted'), ('approved', 'Approved'), ('rejected', 'Rejected')], default='draft', max_length=20, verbose_name='status')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('submitted_at', models.DateTimeField(blank=True, null=True, verbose_name='submitted at')),
                ('reviewed_at', models.DateTimeField(blank=True, null=True, verbose_name='reviewed at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
            ],
            options={
                'verbose_name': 'Student Report',
                'verbose_name_plural': 'Student Reports',
                'db_table': 'student_reports',
                'ordering': ['-submitted_at', '-created_at'],
                'indexes': [
                    models.Index(fields=['academic_year', 'term'], name='student_report_period_idx'),
                    models.Index(fields=['status'], name='student_report_status_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('status__in', ['submitted', 'resubmitted', 'approved'])), fields=('student_id', 'subject_id', 'term', 'academic_year', 'teacher_id'), name='unique_active_report_per_period'),
                    models.CheckConstraint(condition=models.Q(('submitted_assignments__lte', models.F('total_assignments'))), name='report_submitted_lte_total'),
                    models.CheckConstraint(condition=models.Q(('term__in', [1, 2, 3])), name='report_term_valid'),
                    models.CheckConstraint(condition=models.Q(('average_score__gte', 0), ('average_score__lte', 100)), name='report_average_score_range'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ReportStatusHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('event', models.CharField(choices=[('create_draft', 'Create Draft'), ('submit', 'Submit'), ('approve', 'Approve'), ('reject', 'Reject'), ('resubmit', 'Resubmit')], max_length=20, verbose_name='event')),
                ('from_status', models.CharField(blank=True, choices=[('draft', 'Draft'), ('submitted', 'Submitted'), ('resubmitted', 'Resubmitted'), ('approved', 'Approved'), ('rejected', 'Rejected')], max_length=20, verbose_name='from status')),
                ('to_status', models.CharField(choices=[('draft', 'Draft'), ('submitted', 'Submitted'), ('resubmitted', 'Resubmitted'), ('approved', 'Approved'), ('rejected', 'Rejected')], max_length=20, verbose_name='to status')),
                ('actor_id', models.CharField(blank=True, max_length=64, verbose_name='actor id')),
                ('notes', models.TextField(blank=True, verbose_name='notes')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('report', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='status_history', to='progress_reports.studentreport', verbose_name='report')),
            ],
            options={
                'verbose_name': 'Report Status History',
                'verbose_name_plural': 'Report Status History',
                'db_table': 'student_report_status_history',
                'ordering': ['created_at', 'id'],
            },
        ),
    ]
