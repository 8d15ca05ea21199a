import django_filters

from .models import TERM_CHOICES, ReportStatus, StudentReport


class ReportFilter(django_filters.FilterSet):
    """Optional, AND-combined filters accepted by report queries"""

    academic_year = django_filters.CharFilter(field_name='academic_year')
    term = django_filters.TypedChoiceFilter(choices=TERM_CHOICES, coerce=int)
    subject_id = django_filters.CharFilter(field_name='subject_id')
    teacher_id = django_filters.CharFilter(field_name='teacher_id')
    class_id = django_filters.CharFilter(field_name='class_id')
    student_id = django_filters.CharFilter(field_name='student_id')
    status = django_filters.ChoiceFilter(choices=ReportStatus.choices)

    class Meta:
        model = StudentReport
        fields = ['academic_year', 'term', 'subject_id', 'teacher_id', 'class_id', 'student_id', 'status']
