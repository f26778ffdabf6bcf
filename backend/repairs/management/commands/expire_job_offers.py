from django.core.management.base import BaseCommand

from services.dispatch import expire_old, redispatch_exhausted


class Command(BaseCommand):
    help = "Expire job offers past their deadline and close out exhausted dispatch rounds."

    def add_arguments(self, parser):
        parser.add_argument(
            "--redispatch",
            action="store_true",
            help="Start a new round for exhausted requests that still have rounds left.",
        )

    def handle(self, *args, **options):
        outcome = expire_old()

        self.stdout.write(
            self.style.SUCCESS(
                f"Expired {outcome.expired_count} offer(s); "
                f"{len(outcome.exhausted_request_ids)} request(s) left without providers."
            )
        )

        if options["redispatch"]:
            results = redispatch_exhausted(outcome.exhausted_request_ids)
            redispatched = sum(1 for result in results if result.success)
            self.stdout.write(self.style.SUCCESS(f"Re-dispatched {redispatched} request(s)."))
