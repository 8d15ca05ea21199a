from progress_reports.models import ReportStatus

FILTER_OPTIONS = ('academic_year', 'term', 'subject_id', 'teacher_id', 'class_id', 'status')


def add_filter_arguments(parser):
    parser.add_argument("--academic-year", dest="academic_year", help="Only reports for this academic year")
    parser.add_argument("--term", type=int, choices=[1, 2, 3], help="Only reports for this term")
    parser.add_argument("--subject-id", dest="subject_id", help="Only reports for this subject")
    parser.add_argument("--teacher-id", dest="teacher_id", help="Only reports by this teacher")
    parser.add_argument("--class-id", dest="class_id", help="Only reports for this class")
    parser.add_argument("--status", choices=ReportStatus.values, help="Only reports with this status")


def filters_from_options(options):
    return {name: options.get(name) for name in FILTER_OPTIONS if options.get(name) is not None}
