"""In-process fan-out of collection snapshots to live subscribers."""

import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

Record = Dict[str, Any]
Listener = Callable[[List[Record]], None]


def sort_records(
    records: Iterable[Record],
    order_by: Optional[str] = None,
    descending: bool = False,
) -> List[Record]:
    """Order records by a field. Records without the field go last."""
    records = list(records)
    if not order_by:
        return records

    present = [r for r in records if r.get(order_by) is not None]
    missing = [r for r in records if r.get(order_by) is None]
    # Numbers sort before strings so mixed fields never compare across types
    present.sort(
        key=lambda r: (isinstance(r[order_by], str), r[order_by]),
        reverse=descending,
    )
    return present + missing


class Subscription:
    """A listener bound to one collection and a snapshot ordering."""

    def __init__(
        self,
        collection: str,
        listener: Listener,
        order_by: Optional[str] = None,
        descending: bool = False,
    ):
        self.collection = collection
        self.listener = listener
        self.order_by = order_by
        self.descending = descending

    def deliver(self, records: List[Record]) -> None:
        snapshot = [dict(r) for r in records]
        self.listener(sort_records(snapshot, self.order_by, self.descending))


class ChangeFeed:
    """Registry of snapshot listeners keyed by collection name."""

    def __init__(self):
        self._subscriptions: Dict[str, List[Subscription]] = {}
        self._lock = threading.Lock()

    def subscribe(
        self,
        collection: str,
        listener: Listener,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> Callable[[], None]:
        """Register a listener. Returns a callable that removes it again."""
        subscription = Subscription(collection, listener, order_by, descending)
        with self._lock:
            self._subscriptions.setdefault(collection, []).append(subscription)
        logger.debug(f"Subscribed to '{collection}'")

        def unsubscribe() -> None:
            with self._lock:
                subscriptions = self._subscriptions.get(collection, [])
                if subscription in subscriptions:
                    subscriptions.remove(subscription)
                    logger.debug(f"Unsubscribed from '{collection}'")

        return unsubscribe

    def has_subscribers(self, collection: str) -> bool:
        with self._lock:
            return bool(self._subscriptions.get(collection))

    def subscriber_count(self, collection: Optional[str] = None) -> int:
        with self._lock:
            if collection:
                return len(self._subscriptions.get(collection, []))
            return sum(len(subs) for subs in self._subscriptions.values())

    def publish(self, collection: str, records: List[Record]) -> None:
        """Deliver a snapshot to every listener of the collection."""
        with self._lock:
            subscriptions = list(self._subscriptions.get(collection, []))

        for subscription in subscriptions:
            try:
                subscription.deliver(records)
            except Exception as e:
                # One broken listener must not starve the others
                logger.error(f"Snapshot listener for '{collection}' failed: {e}", exc_info=True)


# Global change feed instance
change_feed = ChangeFeed()
