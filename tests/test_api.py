"""
REST endpoints under /api/auctions/
"""
from datetime import timedelta
from decimal import Decimal

import pytest
from django.db import OperationalError
from django.utils import timezone

from auctions.models import Auction, AuctionStatus, AutoBid
from auctions.services import place_bid

pytestmark = [pytest.mark.integration, pytest.mark.django_db]


class TestPublicEndpoints:
    def test_list_only_active(self, api_client, make_auction):
        live = make_auction(category='watches')
        make_auction(status=AuctionStatus.SCHEDULED)
        make_auction(status=AuctionStatus.ENDED)

        response = api_client.get('/api/auctions/')

        assert response.status_code == 200
        assert [item['id'] for item in response.json()] == [live.id]

    def test_list_category_filter(self, api_client, make_auction):
        make_auction(category='watches')
        cars = make_auction(category='cars')

        response = api_client.get('/api/auctions/', {'category': 'cars'})

        assert [item['id'] for item in response.json()] == [cars.id]

    def test_detail_counts_views(self, api_client, auction):
        api_client.get(f'/api/auctions/{auction.id}/')
        response = api_client.get(f'/api/auctions/{auction.id}/')

        data = response.json()
        assert response.status_code == 200
        assert data['views'] == 2
        assert data['minimum_bid'] == '1000.00'
        assert data['quick_bids'] == ['1000.00', '1100.00', '1200.00']
        assert data['bid_count'] == 0

    def test_detail_activates_due_auction(self, api_client, make_auction):
        auction = make_auction(
            status=AuctionStatus.SCHEDULED,
            start_time=timezone.now() - timedelta(seconds=5),
        )

        response = api_client.get(f'/api/auctions/{auction.id}/')

        assert response.json()['status'] == AuctionStatus.ACTIVE

    def test_detail_not_found(self, api_client):
        assert api_client.get('/api/auctions/999999/').status_code == 404

    def test_bid_history_and_events(self, api_client, auction, bidder_a, bidder_b):
        place_bid(auction.id, bidder_a, Decimal('1000'))
        place_bid(auction.id, bidder_b, Decimal('1100'))

        bids = api_client.get(f'/api/auctions/{auction.id}/bids/').json()
        events = api_client.get(f'/api/auctions/{auction.id}/events/', {'after': 1}).json()

        assert [bid['amount'] for bid in bids] == ['1000.00', '1100.00']
        assert [event['sequence'] for event in events] == [2, 3]
        assert events[1]['kind'] == 'outbid'
        assert events[1]['recipient_id'] == bidder_a.id


class TestPlaceBidEndpoint:
    def test_requires_authentication(self, api_client, auction):
        response = api_client.post(f'/api/auctions/{auction.id}/bid/', {'amount': '1000'}, format='json')
        assert response.status_code == 401

    def test_accepted(self, client_for, auction, bidder_a):
        response = client_for(bidder_a).post(
            f'/api/auctions/{auction.id}/bid/', {'amount': '1000'}, format='json'
        )

        data = response.json()
        assert response.status_code == 201
        assert data['accepted'] is True
        assert data['current_bid'] == '1000.00'
        assert data['minimum_bid'] == '1100.00'
        assert data['highest_bidder_id'] == bidder_a.id
        assert data['bid']['sequence'] == 1

    def test_rejected_too_low(self, client_for, auction, bidder_a):
        response = client_for(bidder_a).post(
            f'/api/auctions/{auction.id}/bid/', {'amount': '800'}, format='json'
        )

        data = response.json()
        assert response.status_code == 400
        assert data['accepted'] is False
        assert data['reason'] == 'bid_too_low'
        assert data['minimum_bid'] == '1000.00'
        assert data['message_ar']
        assert data['error'] == data['message_en']

    def test_invalid_amount(self, client_for, auction, bidder_a):
        response = client_for(bidder_a).post(
            f'/api/auctions/{auction.id}/bid/', {'amount': 'lots'}, format='json'
        )
        assert response.status_code == 400
        assert 'amount' in response.json()

    def test_zero_bid_on_free_start(self, client_for, make_auction, bidder_a):
        auction = make_auction(starting_price=Decimal('0.00'))

        response = client_for(bidder_a).post(
            f'/api/auctions/{auction.id}/bid/', {'amount': '0'}, format='json'
        )

        assert response.status_code == 201
        assert response.json()['current_bid'] == '0.00'

    def test_negative_amount(self, client_for, auction, bidder_a):
        response = client_for(bidder_a).post(
            f'/api/auctions/{auction.id}/bid/', {'amount': '-5'}, format='json'
        )
        assert response.status_code == 400
        assert 'amount' in response.json()

    def test_unknown_auction(self, client_for, bidder_a):
        response = client_for(bidder_a).post('/api/auctions/999999/bid/', {'amount': '1000'}, format='json')
        assert response.status_code == 404

    def test_busy(self, client_for, auction, bidder_a, monkeypatch):
        def locked(auction_id):
            raise OperationalError("lock timeout")

        monkeypatch.setattr('auctions.engine.lock_auction', locked)

        response = client_for(bidder_a).post(
            f'/api/auctions/{auction.id}/bid/', {'amount': '1000'}, format='json'
        )

        assert response.status_code == 409
        assert response.json()['reason'] == 'retry_later'


class TestAutoBidEndpoint:
    def test_set_and_read(self, client_for, auction, bidder_a):
        client = client_for(bidder_a)

        created = client.post(f'/api/auctions/{auction.id}/auto-bid/', {'max_bid_amount': '2000'}, format='json')
        fetched = client.get(f'/api/auctions/{auction.id}/auto-bid/')

        assert created.status_code == 200
        assert created.json()['is_active'] is True
        assert created.json()['current_proxy_bid'] == '1000.00'
        assert fetched.json()['max_bid_amount'] == '2000.00'

    def test_rejected_ceiling(self, client_for, auction, bidder_a, bidder_b):
        place_bid(auction.id, bidder_a, Decimal('1000'))

        response = client_for(bidder_b).post(
            f'/api/auctions/{auction.id}/auto-bid/', {'max_bid_amount': '1050'}, format='json'
        )

        data = response.json()
        assert response.status_code == 400
        assert data['reason'] == 'bid_too_low'
        assert data['minimum_bid'] == '1100.00'

    def test_cancel(self, client_for, auction, bidder_a):
        client = client_for(bidder_a)
        client.post(f'/api/auctions/{auction.id}/auto-bid/', {'max_bid_amount': '2000'}, format='json')

        first = client.delete(f'/api/auctions/{auction.id}/auto-bid/')
        second = client.delete(f'/api/auctions/{auction.id}/auto-bid/')

        assert first.json() == {'status': 'cancelled'}
        assert second.json() == {'status': 'inactive'}
        assert not AutoBid.objects.get(user=bidder_a).is_active

    def test_read_missing(self, client_for, auction, bidder_a):
        response = client_for(bidder_a).get(f'/api/auctions/{auction.id}/auto-bid/')
        assert response.status_code == 404


class TestSellerAndAdminEndpoints:
    def test_seller_cancels(self, client_for, auction, seller):
        response = client_for(seller).post(f'/api/auctions/{auction.id}/cancel/')

        assert response.status_code == 200
        assert response.json() == {'status': 'cancelled', 'auction_id': auction.id}

    def test_seller_cannot_cancel_with_bids(self, client_for, auction, seller, bidder_a):
        place_bid(auction.id, bidder_a, Decimal('1000'))

        response = client_for(seller).post(f'/api/auctions/{auction.id}/cancel/')

        assert response.status_code == 400
        assert response.json()['reason'] == 'cannot_cancel'

    def test_bidder_cannot_cancel(self, client_for, auction, bidder_a):
        response = client_for(bidder_a).post(f'/api/auctions/{auction.id}/cancel/')
        assert response.status_code == 403

    def test_admin_closes_expired(self, client_for, auction, admin_user, bidder_a):
        place_bid(auction.id, bidder_a, Decimal('1000'))
        Auction.objects.filter(pk=auction.pk).update(end_time=timezone.now() - timedelta(seconds=1))

        response = client_for(admin_user).post(f'/api/auctions/{auction.id}/close/')

        assert response.status_code == 200
        assert response.json() == {'closed': True, 'status': 'ended', 'winner_id': bidder_a.id}

    def test_admin_close_before_end(self, client_for, auction, admin_user):
        response = client_for(admin_user).post(f'/api/auctions/{auction.id}/close/')

        assert response.json()['closed'] is False
        assert response.json()['status'] == 'active'

    def test_close_requires_admin(self, client_for, auction, seller):
        response = client_for(seller).post(f'/api/auctions/{auction.id}/close/')
        assert response.status_code == 403
