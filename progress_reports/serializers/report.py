from decimal import Decimal

from rest_framework import serializers

from progress_reports.exceptions import ReportValidationError
from progress_reports.models import TERM_CHOICES


class ReportKeySerializer(serializers.Serializer):
    """The five fields that identify one reporting period"""

    student_id = serializers.CharField(max_length=64)
    subject_id = serializers.CharField(max_length=64)
    term = serializers.ChoiceField(choices=TERM_CHOICES)
    academic_year = serializers.CharField(max_length=9)
    teacher_id = serializers.CharField(max_length=64)


class ReportPayloadSerializer(serializers.Serializer):
    """Teacher-entered figures and remark"""

    total_assignments = serializers.IntegerField(min_value=0, default=0)
    submitted_assignments = serializers.IntegerField(min_value=0, default=0)
    average_score = serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        min_value=Decimal('0'),
        max_value=Decimal('100'),
        default=Decimal('0')
    )
    teacher_remark = serializers.CharField(allow_blank=True, default='', trim_whitespace=False)

    def validate(self, attrs):
        total = attrs.get('total_assignments')
        submitted = attrs.get('submitted_assignments')
        if total is not None and submitted is not None and submitted > total:
            raise serializers.ValidationError({
                'submitted_assignments': ['Submitted assignments cannot exceed total assignments.']
            })
        return attrs


class ReportInputSerializer(ReportKeySerializer, ReportPayloadSerializer):
    """Full report submission: key, display snapshot and payload"""

    class_id = serializers.CharField(max_length=64, allow_blank=True, default='')
    student_name = serializers.CharField(max_length=200, allow_blank=True, default='')
    admission_number = serializers.CharField(max_length=50, allow_blank=True, default='')
    teacher_name = serializers.CharField(max_length=200, allow_blank=True, default='')
    subject_name = serializers.CharField(max_length=200, allow_blank=True, default='')
    class_name = serializers.CharField(max_length=100, allow_blank=True, default='')


def _plain_errors(errors):
    return {
        field: [str(message) for message in (messages if isinstance(messages, list) else [messages])]
        for field, messages in errors.items()
    }


def validate_with(serializer_class, data, **kwargs):
    """
    Run a serializer over ``data`` and return its validated dict.

    Raises:
        ReportValidationError: with the serializer's field errors
    """
    serializer = serializer_class(data=data, **kwargs)
    if not serializer.is_valid():
        raise ReportValidationError(errors=_plain_errors(serializer.errors))
    return dict(serializer.validated_data)
