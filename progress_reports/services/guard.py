"""
Submission Guard - decides whether a report may be created for a period.

The guard is a fast pre-check for callers. The unique constraint on active
reports in the database is what actually prevents duplicates when two
submissions for the same period race each other.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from progress_reports.exceptions import DuplicateReport
from progress_reports.models import ACTIVE_STATUSES, REPORT_KEY_FIELDS, ReportStatus
from progress_reports.serializers import ReportKeySerializer, validate_with

logger = logging.getLogger(__name__)

MATCH_PRIORITY = {
    ReportStatus.SUBMITTED.value: 0,
    ReportStatus.RESUBMITTED.value: 0,
    ReportStatus.APPROVED.value: 0,
    ReportStatus.DRAFT.value: 1,
    ReportStatus.REJECTED.value: 2,
}


@dataclass(frozen=True)
class ReportKey:
    student_id: str
    subject_id: str
    term: int
    academic_year: str
    teacher_id: str

    @classmethod
    def from_data(cls, data) -> 'ReportKey':
        """
        Build a validated key from a mapping holding the five key fields.

        Raises:
            ReportValidationError: a field is missing or malformed
        """
        if isinstance(data, cls):
            return data
        fields = {name: data.get(name) for name in ReportKeySerializer().fields}
        return cls(**validate_with(ReportKeySerializer, fields))

    @classmethod
    def of(cls, report) -> 'ReportKey':
        """Key of a stored report"""
        return cls(**{name: getattr(report, name) for name in REPORT_KEY_FIELDS})

    def as_filter(self) -> dict:
        return {
            'student_id': self.student_id,
            'subject_id': self.subject_id,
            'term': self.term,
            'academic_year': self.academic_year,
            'teacher_id': self.teacher_id,
        }


@dataclass(frozen=True)
class GuardResult:
    exists: bool
    can_resubmit: bool = False
    existing_id: Optional[str] = None
    existing_status: Optional[str] = None

    @property
    def blocked(self) -> bool:
        """True when an active report already covers the period"""
        return self.existing_status in ACTIVE_STATUSES

    def as_dict(self) -> dict:
        data = {'exists': self.exists}
        if self.exists:
            data.update({
                'can_resubmit': self.can_resubmit,
                'existing_id': self.existing_id,
                'existing_status': self.existing_status,
            })
        return data


class SubmissionGuard:
    """Read-only duplicate and resubmission check"""

    def __init__(self, store):
        self.store = store

    async def check_exists(self, key) -> GuardResult:
        """
        Look up reports for the key's period.

        An active report blocks submission; a draft is returned so the
        submitter can promote it; a rejected report allows resubmission.

        Args:
            key: ReportKey or mapping with student_id, subject_id, term,
                academic_year and teacher_id

        Returns:
            GuardResult
        """
        key = ReportKey.from_data(key)
        matches = await self.store.find(key.as_filter(), ordering=['-updated_at'])
        if not matches:
            return GuardResult(exists=False)

        # Newest report of the highest-priority status wins
        report = min(matches, key=lambda r: MATCH_PRIORITY[r.status])
        return GuardResult(
            exists=True,
            can_resubmit=report.status == ReportStatus.REJECTED,
            existing_id=str(report.pk),
            existing_status=report.status,
        )

    async def ensure_can_submit(self, key) -> GuardResult:
        """
        Same as check_exists, but raise when an active report blocks the period.

        Raises:
            DuplicateReport: carrying the blocking report's id
        """
        result = await self.check_exists(key)
        if result.blocked:
            logger.warning(
                f"Refused duplicate report for {ReportKey.from_data(key)}: "
                f"report {result.existing_id} is {result.existing_status}"
            )
            raise DuplicateReport(existing_id=result.existing_id, can_resubmit=False)
        return result
