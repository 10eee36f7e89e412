"""
Append-only bid ledger
"""
from datetime import timedelta
from decimal import Decimal

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from auctions.exceptions import AuctionInvariantError
from auctions.ledger import append_bid, bid_history, ledger_tail, verify_ledger
from auctions.models import Bid
from auctions.services import place_bid


@pytest.mark.django_db
class TestAppendBid:
    def test_sequences_start_at_one(self, auction, bidder_a, bidder_b):
        first = append_bid(auction, bidder_a.id, Decimal('1000'))
        auction.current_bid = first.amount
        second = append_bid(auction, bidder_b.id, Decimal('1100'))

        assert (first.sequence, second.sequence) == (1, 2)
        assert ledger_tail(auction) == second

    def test_record_out_of_sync_with_tail(self, auction, bidder_a, bidder_b):
        append_bid(auction, bidder_a.id, Decimal('1000'))
        auction.current_bid = Decimal('1200')

        with pytest.raises(AuctionInvariantError) as exc_info:
            append_bid(auction, bidder_b.id, Decimal('1300'))
        assert exc_info.value.auction_id == auction.id
        assert Bid.objects.filter(auction=auction).count() == 1

    def test_amount_not_clearing_increment(self, auction, bidder_a, bidder_b):
        append_bid(auction, bidder_a.id, Decimal('1000'))
        auction.current_bid = Decimal('1000')

        with pytest.raises(AuctionInvariantError):
            append_bid(auction, bidder_b.id, Decimal('1050'))

    def test_seller_never_reaches_ledger(self, auction, seller):
        with pytest.raises(AuctionInvariantError):
            append_bid(auction, seller.id, Decimal('1000'))

    def test_history_in_ledger_order(self, auction, bidder_a, bidder_b):
        place_bid(auction.id, bidder_a, Decimal('1000'))
        place_bid(auction.id, bidder_b, Decimal('1500'))
        place_bid(auction.id, bidder_a, Decimal('1600'))

        amounts = [bid.amount for bid in bid_history(auction)]
        assert amounts == [Decimal('1000'), Decimal('1500'), Decimal('1600')]

    def test_proxy_bids_timestamped_after_manual_bid(
        self, frozen_now, auction, bidder_a, bidder_b, bidder_c, make_auto_bid
    ):
        make_auto_bid(auction, bidder_a, '2000', created_at=frozen_now)
        make_auto_bid(auction, bidder_b, '1500', created_at=frozen_now + timedelta(seconds=1))

        result = place_bid(auction.id, bidder_c, Decimal('1000'))

        manual, proxy = bid_history(auction)
        assert result.auto_bids_placed == 1
        assert (manual.amount, proxy.amount) == (Decimal('1000'), Decimal('1600'))
        assert manual.created_at == frozen_now
        assert proxy.created_at > manual.created_at
        auction.refresh_from_db()
        assert verify_ledger(auction) == []


@pytest.mark.django_db
class TestVerifyLedger:
    def test_sound_ledger(self, auction, bidder_a, bidder_b):
        place_bid(auction.id, bidder_a, Decimal('1000'))
        place_bid(auction.id, bidder_b, Decimal('1100'))
        auction.refresh_from_db()

        assert verify_ledger(auction) == []

    def test_reports_broken_ledger(self, auction, bidder_a, bidder_b):
        Bid.objects.create(auction=auction, bidder=bidder_a, amount=Decimal('1000'), sequence=1)
        Bid.objects.create(auction=auction, bidder=bidder_b, amount=Decimal('1050'), sequence=3)
        auction.current_bid = Decimal('1000')
        auction.save()

        problems = verify_ledger(auction)

        assert any("gap" in problem for problem in problems)
        assert any("increment" in problem for problem in problems)
        assert any("ledger tail" in problem for problem in problems)

    def test_reports_tied_timestamps(self, frozen_now, auction, bidder_a, bidder_b):
        Bid.objects.create(auction=auction, bidder=bidder_a, amount=Decimal('1000'),
                           sequence=1, created_at=frozen_now)
        Bid.objects.create(auction=auction, bidder=bidder_b, amount=Decimal('1100'),
                           sequence=2, created_at=frozen_now)
        auction.current_bid = Decimal('1100')
        auction.save()

        assert verify_ledger(auction) == ["bid #2 not timestamped after #1"]

    def test_command_passes_on_sound_ledgers(self, auction, bidder_a, capsys):
        place_bid(auction.id, bidder_a, Decimal('1000'))

        call_command('verify_auction_ledgers')

        assert "all consistent" in capsys.readouterr().out

    def test_command_fails_on_broken_ledger(self, auction, bidder_a):
        Bid.objects.create(auction=auction, bidder=bidder_a, amount=Decimal('900'), sequence=1)
        auction.current_bid = Decimal('900')
        auction.save()

        with pytest.raises(CommandError):
            call_command('verify_auction_ledgers', auction.id)
