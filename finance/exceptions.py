"""Domain errors for balances and payouts."""


class PayoutError(Exception):
    """Payout request refused (insufficient balance, below minimum, wrong state)."""
