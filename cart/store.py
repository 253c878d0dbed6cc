"""Session-held JSON documents for the storefront: cart, favorites, search history.

Each document lives under a fixed session key as JSON text. One store
object owns one key: reads go through :meth:`JSONDocumentStore.get`,
writes through :meth:`JSONDocumentStore.set`, and every write sends the
store's signal exactly once. :meth:`JSONDocumentStore.batch` collapses
several mutations into one write and one notification.

Concurrent requests from the same visitor are last-write-wins, as with
any session value.
"""

import json
import logging
from contextlib import contextmanager
from decimal import Decimal, InvalidOperation

from django.conf import settings

from .signals import cart_updated, favorites_updated, search_history_updated

logger = logging.getLogger(__name__)

CART_KEY = 'cart'
FAVORITES_KEY = 'favorites'
SEARCH_HISTORY_KEY = 'searchHistory'

OTHER_SHOP_ID = 'other'
OTHER_SHOP_NAME = 'Boshqa'


class StoreUnavailable(RuntimeError):
    """Raised when writing to a store that has no session behind it."""


class JSONDocumentStore:
    """Base class: one JSON document under ``key`` in a session mapping."""

    key = None
    signal = None

    def __init__(self, session):
        self.session = session
        self._batch_depth = 0
        self._pending = None
        self._dirty = False

    @classmethod
    def for_request(cls, request):
        return cls(getattr(request, 'session', None))

    @property
    def available(self):
        return self.session is not None

    def empty(self):
        return []

    def clean(self, value):
        """Return a well-formed document built from parsed JSON ``value``."""
        return value

    def get(self):
        if self._dirty:
            return self._pending
        if self.session is None:
            return self.empty()
        raw = self.session.get(self.key)
        if raw in (None, ''):
            return self.empty()
        try:
            value = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
        except ValueError:
            logger.warning('Discarding unparsable %s document', self.key)
            return self.empty()
        return self.clean(value)

    def set(self, value):
        if self._batch_depth:
            self._pending = value
            self._dirty = True
            return
        self._write(value)

    def _write(self, value):
        if self.session is None:
            raise StoreUnavailable(f'No session to store {self.key!r} in.')
        self.session[self.key] = json.dumps(value)
        self.session.modified = True
        self.signal.send(sender=type(self), session=self.session, value=value)

    def subscribe(self, receiver):
        """Connect ``receiver`` to this store's signal; returns a disconnect callable."""
        self.signal.connect(receiver, sender=type(self), weak=False)
        return lambda: self.signal.disconnect(receiver, sender=type(self))

    @contextmanager
    def batch(self):
        """Defer the write and notification to the end of the block.

        If the block raises, nothing is written.
        """
        self._batch_depth += 1
        try:
            yield self
        except BaseException:
            self._batch_depth -= 1
            if not self._batch_depth:
                self._pending, self._dirty = None, False
            raise
        self._batch_depth -= 1
        if not self._batch_depth and self._dirty:
            value = self._pending
            self._pending, self._dirty = None, False
            self._write(value)


def _decimal(value):
    if isinstance(value, bool) or value is None:
        raise InvalidOperation(value)
    return Decimal(str(value))


def _money(value):
    return str(_decimal(value).quantize(Decimal('0.01')))


class CartStore(JSONDocumentStore):
    """Cart line items keyed by product id.

    A line is a snapshot taken when the product was added: ``id`` (product
    id as a string), ``name``, ``price``, ``original_price``,
    ``image_url``, ``quantity``, ``shop_id`` and ``shop_name``. It is not
    refreshed when the product changes later.
    """

    key = CART_KEY
    signal = cart_updated

    def clean(self, value):
        if not isinstance(value, list):
            logger.warning('Discarding cart document of type %s', type(value).__name__)
            return []
        lines = []
        seen = set()
        for entry in value:
            line = self._clean_line(entry)
            if line is None:
                logger.warning('Dropping malformed cart entry: %r', entry)
                continue
            if line['id'] in seen:
                # merge duplicate ids left by older writers
                existing = next(item for item in lines if item['id'] == line['id'])
                existing['quantity'] += line['quantity']
                continue
            seen.add(line['id'])
            lines.append(line)
        return lines

    @staticmethod
    def _clean_line(entry):
        if not isinstance(entry, dict) or entry.get('id') in (None, ''):
            return None
        try:
            price = _money(entry.get('price'))
            quantity = entry.get('quantity')
            if isinstance(quantity, bool) or int(quantity) != quantity or int(quantity) < 1:
                return None
            original = entry.get('original_price')
            original = _money(original) if original not in (None, '') else None
        except (InvalidOperation, OverflowError, TypeError, ValueError):
            return None
        return {
            'id': str(entry['id']),
            'name': str(entry.get('name') or ''),
            'price': price,
            'original_price': original,
            'image_url': entry.get('image_url') or '',
            'quantity': int(quantity),
            'shop_id': str(entry['shop_id']) if entry.get('shop_id') not in (None, '') else None,
            'shop_name': entry.get('shop_name') or None,
        }

    def load(self):
        return self.get()

    def add(self, snapshot, qty=1):
        """Add ``qty`` of the product in ``snapshot``; merges with an existing line."""
        if isinstance(qty, bool) or int(qty) != qty or qty < 1:
            raise ValueError('Quantity must be a positive integer.')
        line = self._clean_line({**snapshot, 'quantity': int(qty)})
        if line is None:
            raise ValueError('Cart item needs an id and a numeric price.')

        lines = self.load()
        for item in lines:
            if item['id'] == line['id']:
                item['quantity'] += int(qty)
                break
        else:
            lines.append(line)
        self.set(lines)
        return lines

    def set_quantity(self, item_id, qty):
        """Set a line's quantity; ``qty < 1`` removes the line. Unknown ids are ignored."""
        item_id = str(item_id)
        lines = self.load()
        if not any(item['id'] == item_id for item in lines):
            return lines
        if qty < 1:
            lines = [item for item in lines if item['id'] != item_id]
        else:
            for item in lines:
                if item['id'] == item_id:
                    item['quantity'] = int(qty)
        self.set(lines)
        return lines

    def remove(self, item_id):
        item_id = str(item_id)
        lines = self.load()
        remaining = [item for item in lines if item['id'] != item_id]
        if len(remaining) != len(lines):
            self.set(remaining)
        return remaining

    def clear(self):
        self.set([])

    def get_item(self, item_id):
        item_id = str(item_id)
        return next((item for item in self.load() if item['id'] == item_id), None)

    @staticmethod
    def line_total(line) -> Decimal:
        return _decimal(line['price']) * int(line['quantity'])

    def count(self, lines=None) -> int:
        lines = self.load() if lines is None else lines
        return sum(int(item['quantity']) for item in lines)

    def subtotal(self, lines=None) -> Decimal:
        lines = self.load() if lines is None else lines
        return sum((self.line_total(item) for item in lines), Decimal('0'))

    def grouped_by_shop(self, lines=None):
        """Group lines by shop, in order of first appearance.

        Lines without a shop land in the ``other`` group.
        """
        lines = self.load() if lines is None else lines
        groups = {}
        for item in lines:
            shop_id = item.get('shop_id') or OTHER_SHOP_ID
            group = groups.get(shop_id)
            if group is None:
                group = groups[shop_id] = {
                    'shop_id': shop_id,
                    'shop_name': item.get('shop_name') or OTHER_SHOP_NAME,
                    'items': [],
                }
            group['items'].append(item)
        for group in groups.values():
            group['subtotal'] = self.subtotal(group['items'])
        return list(groups.values())


class FavoritesStore(JSONDocumentStore):
    """Favorite product ids (strings, no duplicates)."""

    key = FAVORITES_KEY
    signal = favorites_updated

    def clean(self, value):
        if not isinstance(value, list):
            return []
        ids = []
        for entry in value:
            if entry in (None, '') or isinstance(entry, (dict, list, bool)):
                logger.warning('Dropping malformed favorites entry: %r', entry)
                continue
            entry = str(entry)
            if entry not in ids:
                ids.append(entry)
        return ids

    def ids(self):
        return self.get()

    def is_favorite(self, item_id) -> bool:
        if not self.available:
            return False
        return str(item_id) in self.get()

    def toggle(self, item_id) -> bool:
        """Flip membership of ``item_id``; returns the new membership."""
        item_id = str(item_id)
        ids = self.get()
        if item_id in ids:
            ids = [i for i in ids if i != item_id]
            added = False
        else:
            ids = ids + [item_id]
            added = True
        self.set(ids)
        return added

    def remove(self, item_id):
        item_id = str(item_id)
        ids = self.get()
        if item_id in ids:
            self.set([i for i in ids if i != item_id])

    def clear(self):
        self.set([])


class SearchHistoryStore(JSONDocumentStore):
    """Most recent search terms first, without duplicates."""

    key = SEARCH_HISTORY_KEY
    signal = search_history_updated

    @property
    def limit(self):
        return int(settings.MARKETPLACE['SEARCH_HISTORY_LIMIT'])

    def clean(self, value):
        if not isinstance(value, list):
            return []
        terms = []
        for term in value:
            if not isinstance(term, str) or not term.strip():
                continue
            term = term.strip()
            if term not in terms:
                terms.append(term)
        return terms[:self.limit]

    def items(self):
        return self.get()

    def push(self, term):
        term = (term or '').strip()
        if not term:
            return self.get()
        terms = [term] + [t for t in self.get() if t != term]
        terms = terms[:self.limit]
        self.set(terms)
        return terms

    def clear(self):
        self.set([])
