from django.core.management.base import BaseCommand
from auctions.services import activate_due_auctions, close_due_auctions


class Command(BaseCommand):
    help = 'Activates due scheduled auctions and closes expired active ones'

    def handle(self, *args, **options):
        activated = activate_due_auctions()
        closed = close_due_auctions()

        if activated or closed:
            self.stdout.write(
                self.style.SUCCESS(
                    f'Activated {activated} auctions and closed {closed} auctions'
                )
            )
        else:
            self.stdout.write("No auctions due")
