import json

from asgiref.sync import async_to_sync
from django.core.management.base import BaseCommand, CommandError

from progress_reports.exceptions import ReportError
from progress_reports.services.registry import check_services, get_service

from ._filters import add_filter_arguments, filters_from_options


class Command(BaseCommand):
    help = "Print report counts by status, term and academic year as JSON."

    def add_arguments(self, parser):
        add_filter_arguments(parser)
        parser.add_argument(
            "--health",
            action="store_true",
            default=False,
            help="Include the report service health check",
        )

    def handle(self, *args, **options):
        filters = filters_from_options(options)

        try:
            summary = async_to_sync(get_service("statistics").statistics)(filters)
        except ReportError as e:
            raise CommandError(str(e))

        # JSON object keys must be strings
        summary["by_term"] = {str(term): count for term, count in summary["by_term"].items()}
        if options["health"]:
            summary["health"] = async_to_sync(check_services)()

        self.stdout.write(json.dumps(summary, indent=2, sort_keys=True))
