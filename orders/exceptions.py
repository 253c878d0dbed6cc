"""Domain errors raised by the orders services and turned into 400s by views."""


class CheckoutError(Exception):
    """Checkout could not be completed (empty cart, refused promo code, ...)."""


class InvalidTransition(Exception):
    """Requested order status change is not allowed from the current status."""

    def __init__(self, current, requested):
        self.current = current
        self.requested = requested
        super().__init__(f'Cannot change order status from "{current}" to "{requested}".')
