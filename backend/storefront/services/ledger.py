"""Price-estimate ledger: one ordered set of line items per browsing session."""

from collections import OrderedDict
from decimal import Decimal
from typing import Dict, List, Optional
import logging
import os
import threading

from pydantic import TypeAdapter, ValidationError

from storefront.models.estimate import LineItem, line_key
from storefront.models.product import PriceTier
from storefront.services.store import BlobStore

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_PREFIX = os.getenv("ESTIMATE_STORAGE_PREFIX", "magiabuena_cart")
ESTIMATE_CACHE_SIZE = int(os.getenv("ESTIMATE_CACHE_SIZE", "1024"))

_lines_adapter = TypeAdapter(List[LineItem])


class EstimateLedger:
    """In-memory estimate persisted as a single JSON blob.

    Every mutation rewrites the whole blob. Write failures are logged and
    otherwise ignored, so the ledger keeps working for the current session.
    """

    def __init__(self, store: BlobStore, storage_key: str):
        self._store = store
        self.storage_key = storage_key
        self._lines: Dict[str, LineItem] = {}
        self._lock = threading.RLock()

    def load(self) -> None:
        """Replace the current lines with the persisted ones, if any."""
        try:
            raw = self._store.read(self.storage_key)
        except Exception as e:
            logger.exception("Failed to read estimate key=%s: %s", self.storage_key, e)
            return
        if not raw:
            return

        try:
            lines = _lines_adapter.validate_json(raw)
        except ValidationError as e:
            logger.warning("Discarding malformed estimate key=%s: %s", self.storage_key, e.error_count())
            return

        restored: Dict[str, LineItem] = {}
        for line in lines:
            if line.key in restored:
                logger.warning("Discarding estimate key=%s: duplicate line %s", self.storage_key, line.key)
                return
            restored[line.key] = line

        with self._lock:
            self._lines = restored
        logger.debug("Restored estimate key=%s lines=%s", self.storage_key, len(restored))

    def dump(self) -> str:
        with self._lock:
            return _lines_adapter.dump_json(list(self._lines.values())).decode()

    def _persist(self) -> None:
        try:
            self._store.write(self.storage_key, self.dump())
        except Exception as e:
            logger.exception("Failed to persist estimate key=%s: %s", self.storage_key, e)

    def add(
        self,
        product_id: str,
        tier: PriceTier,
        name: str,
        category: str,
        unit_price: Decimal,
        quantity_delta: int = 1,
    ) -> Optional[LineItem]:
        """Add `quantity_delta` units, merging into an existing line for the same key.

        Non-positive deltas are ignored and return None.
        """
        if isinstance(quantity_delta, bool) or not isinstance(quantity_delta, int) or quantity_delta <= 0:
            logger.warning("Ignoring add with quantity_delta=%r for product_id=%s", quantity_delta, product_id)
            return None

        key = line_key(product_id, tier)
        with self._lock:
            line = self._lines.get(key)
            if line is not None:
                line.quantity += quantity_delta
            else:
                line = LineItem(
                    product_id=str(product_id),
                    tier=tier,
                    name=name,
                    category=category,
                    unit_price=unit_price,
                    quantity=quantity_delta,
                )
                self._lines[key] = line
            self._persist()
            logger.debug("Added key=%s quantity=%s total=%s", key, line.quantity, line.total)
            return line.model_copy()

    def update_quantity(self, key: str, quantity: int) -> Optional[LineItem]:
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            logger.warning("Ignoring update with quantity=%r for key=%s", quantity, key)
            return None
        if quantity <= 0:
            self.remove(key)
            return None
        with self._lock:
            line = self._lines.get(key)
            if line is None:
                return None
            line.quantity = quantity
            self._persist()
            return line.model_copy()

    def remove(self, key: str) -> None:
        with self._lock:
            if self._lines.pop(key, None) is not None:
                self._persist()

    def clear(self) -> None:
        with self._lock:
            self._lines.clear()
            self._persist()

    def get(self, key: str) -> Optional[LineItem]:
        with self._lock:
            line = self._lines.get(key)
            return line.model_copy() if line is not None else None

    def items(self) -> List[LineItem]:
        with self._lock:
            return [line.model_copy() for line in self._lines.values()]

    def item_count(self) -> int:
        with self._lock:
            return sum(line.quantity for line in self._lines.values())

    def total(self) -> Decimal:
        with self._lock:
            return sum((line.total for line in self._lines.values()), Decimal(0))

    def __len__(self) -> int:
        with self._lock:
            return len(self._lines)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._lines


class LedgerRegistry:
    """Holds recently used ledgers by session id, loading each from the store on first use.

    At most `max_ledgers` are kept; the least recently used one is dropped
    and reloaded from its blob when its session comes back.
    """

    def __init__(self, store: BlobStore, prefix: str = DEFAULT_STORAGE_PREFIX, max_ledgers: int = ESTIMATE_CACHE_SIZE):
        self.store = store
        self.prefix = prefix
        self.max_ledgers = max(1, max_ledgers)
        self._lock = threading.Lock()
        self._ledgers: "OrderedDict[str, EstimateLedger]" = OrderedDict()

    def storage_key(self, session_id: str) -> str:
        return f"{self.prefix}:{session_id}"

    def __len__(self) -> int:
        with self._lock:
            return len(self._ledgers)

    def get(self, session_id: str) -> EstimateLedger:
        with self._lock:
            ledger = self._ledgers.get(session_id)
            if ledger is not None:
                self._ledgers.move_to_end(session_id)
                return ledger

        # store I/O without holding the registry lock
        loaded = EstimateLedger(self.store, self.storage_key(session_id))
        loaded.load()

        with self._lock:
            # another request may have loaded the same session meanwhile
            ledger = self._ledgers.setdefault(session_id, loaded)
            self._ledgers.move_to_end(session_id)
            while len(self._ledgers) > self.max_ledgers:
                evicted, _ = self._ledgers.popitem(last=False)
                logger.debug("Evicted estimate session=%s", evicted)
            return ledger
