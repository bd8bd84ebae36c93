import signal
import threading

from django.core.management.base import BaseCommand

from QuizPeersApp.domain.services.expiry_sweeper import ExpirySweeper


class Command(BaseCommand):
    help = "Close assignments past their deadline and force-evaluate their open submissions."

    def add_arguments(self, parser):
        parser.add_argument("--once", action="store_true", help="Run a single sweep and exit.")
        parser.add_argument("--interval", type=float, default=None, help="Seconds between sweeps.")

    def handle(self, *args, **options):
        sweeper = ExpirySweeper(interval_seconds=options["interval"])
        if options["once"]:
            report = sweeper.tick()
            self.stdout.write(self.style.SUCCESS(
                f"Finished {len(report.finished)} assignment(s), {len(report.failed)} failed"
            ))
            return

        stop = threading.Event()
        signal.signal(signal.SIGTERM, lambda *_: stop.set())
        self.stdout.write(f"Sweeping every {sweeper.interval}s")
        try:
            sweeper.run(stop)
        except KeyboardInterrupt:
            stop.set()
        self.stdout.write(self.style.SUCCESS("Sweeper stopped"))
