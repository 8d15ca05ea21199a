import csv
import io

from asgiref.sync import async_to_sync
from django.core.management.base import BaseCommand, CommandError

from progress_reports.exceptions import ReportError
from progress_reports.services.registry import get_service

from ._filters import add_filter_arguments, filters_from_options


class Command(BaseCommand):
    help = "Export student progress reports as CSV."

    def add_arguments(self, parser):
        add_filter_arguments(parser)
        parser.add_argument(
            "--output",
            "-o",
            help="Write the CSV to this file instead of stdout",
        )

    def handle(self, *args, **options):
        filters = filters_from_options(options)
        statistics = get_service("statistics")

        try:
            content = async_to_sync(statistics.export_csv)(filters)
        except ReportError as e:
            raise CommandError(str(e))

        output = options.get("output")
        if not output:
            self.stdout.write(content, ending="")
            return

        with open(output, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
        # Quoted fields may contain newlines
        rows = max(len(list(csv.reader(io.StringIO(content)))) - 1, 0)
        self.stderr.write(self.style.SUCCESS(f"Exported {rows} reports to {output}"))
