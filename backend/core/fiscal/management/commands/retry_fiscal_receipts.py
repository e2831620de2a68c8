import time

from asgiref.sync import async_to_sync
from django.core.management.base import BaseCommand

from fiscal.runtime import build_retry_workflow, get_fiscal_service


class Command(BaseCommand):
    help = (
        "Re-submit orders whose fiscal receipt emission failed. "
        "Runs one batch, or keeps polling with --watch."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--limit",
            type=int,
            default=None,
            help="Maximum number of orders per batch.",
        )
        parser.add_argument(
            "--interval",
            type=float,
            default=None,
            help="Seconds to wait between two orders of the same batch.",
        )
        parser.add_argument(
            "--watch",
            action="store_true",
            help="Keep running, sleeping FISCAL_RETRY_DELAY_SECONDS between batches.",
        )

    def handle(self, *args, **options):
        service = get_fiscal_service()
        workflow = build_retry_workflow(
            service,
            batch_size=options.get("limit"),
            interval_seconds=options.get("interval"),
        )

        while True:
            summary = async_to_sync(workflow.retry_failed_orders)()
            self.stdout.write(
                self.style.SUCCESS(
                    f"[{service.provider_name}] succeeded {summary} skipped={summary.skipped}"
                )
            )
            if not options.get("watch"):
                break
            time.sleep(service.config.retry_delay_seconds)
