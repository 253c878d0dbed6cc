"""Change notifications for the session-held storefront documents.

Each signal is sent once per write with ``session`` and ``value`` (the
document as written). Header badges, favorites icons and the like listen
to these instead of re-reading the session on every render.
"""

from django.dispatch import Signal

cart_updated = Signal()
favorites_updated = Signal()
search_history_updated = Signal()
