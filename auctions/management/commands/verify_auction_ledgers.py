from django.core.management.base import BaseCommand, CommandError
from auctions.ledger import verify_ledger
from auctions.models import Auction


class Command(BaseCommand):
    help = 'Checks every auction ledger for ordering, increment and ownership violations'

    def add_arguments(self, parser):
        parser.add_argument('auction_ids', nargs='*', type=int, help='Only check these auctions')

    def handle(self, *args, **options):
        auctions = Auction.objects.all().order_by('id')
        if options['auction_ids']:
            auctions = auctions.filter(id__in=options['auction_ids'])

        checked = 0
        broken = 0
        for auction in auctions:
            checked += 1
            problems = verify_ledger(auction)
            if problems:
                broken += 1
                for problem in problems:
                    self.stderr.write(self.style.ERROR(f'Auction #{auction.id}: {problem}'))

        if broken:
            raise CommandError(f'{broken} of {checked} auction ledgers are inconsistent')
        self.stdout.write(self.style.SUCCESS(f'Checked {checked} auction ledgers, all consistent'))
