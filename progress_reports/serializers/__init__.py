from .report import (
    ReportInputSerializer,
    ReportKeySerializer,
    ReportPayloadSerializer,
    validate_with,
)

__all__ = [
    'ReportInputSerializer',
    'ReportKeySerializer',
    'ReportPayloadSerializer',
    'validate_with',
]
