"""
Auction engine errors.

Bid validation outcomes are returned as results, not raised. These cover
the rest: lock contention the caller may retry, rejected auto-bid settings,
and broken ledger invariants that only an operator can act on.
"""


class AuctionError(Exception):
    """Base class for auction engine errors"""

    reason = 'auction_error'

    def __init__(self, message: str = "Auction operation failed"):
        self.message = message
        super().__init__(self.message)


class AuctionBusyError(AuctionError):
    """Per-auction lock not acquired in time. Safe to retry after re-quoting."""

    reason = 'retry_later'

    def __init__(self, auction_id: int):
        self.auction_id = auction_id
        super().__init__(f"Auction {auction_id} is busy, try again")


class AuctionInvariantError(AuctionError):
    """The ledger or auction record is inconsistent. Never corrected silently."""

    reason = 'internal_error'

    def __init__(self, auction_id: int, detail: str):
        self.auction_id = auction_id
        self.detail = detail
        super().__init__(f"Invariant violated on auction {auction_id}: {detail}")


class AutoBidRejectedError(AuctionError):
    """Auto-bid instruction refused by the bid rules"""

    def __init__(self, reason: str, minimum_bid=None):
        self.reason = reason
        self.minimum_bid = minimum_bid
        message = f"Auto-bid rejected: {reason}"
        if minimum_bid is not None:
            message += f" (minimum {minimum_bid})"
        super().__init__(message)


class AuctionCannotCancelError(AuctionError):
    """Cancellation not allowed for this actor or state"""

    reason = 'cannot_cancel'
