from django.core.management.base import BaseCommand, CommandError

from domains.tracking.services import run_batch_tracking


class Command(BaseCommand):
    help = "열린 배송건 전체를 택배사 API 로 1회 재조회하고 요약을 출력합니다."

    def add_arguments(self, parser):
        parser.add_argument("--workers", type=int, default=None, help="동시 조회 스레드 수")
        parser.add_argument("--show-errors", action="store_true", help="실패 건 상세 출력")

    def handle(self, *args, **options):
        try:
            summary = run_batch_tracking(max_workers=options.get("workers"))
        except Exception as e:
            raise CommandError(f"Batch tracking failed: {e}") from e

        self.stdout.write(self.style.SUCCESS("Batch tracking completed"))
        self.stdout.write(f"  Total shipments:     {summary.total_shipments}")
        self.stdout.write(f"  Processed:           {summary.processed_shipments}")
        self.stdout.write(f"  Updated:             {summary.updated_shipments}")
        self.stdout.write(f"  Failed:              {summary.failed_shipments}")
        self.stdout.write(f"  Skipped (no adapter): {summary.skipped_shipments}")
        if summary.cancelled:
            self.stdout.write(self.style.WARNING("  Run was cancelled before all shipments were processed"))

        if options.get("show_errors"):
            for err in summary.errors:
                self.stdout.write(f"  - {err['trackingNumber']} ({err['carrier']}): {err['error']}")
