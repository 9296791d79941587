"""
Change notifier.

In-process observer bus for referral and trust history changes.

Delivery is best-effort: at-most-once, no replay, no acknowledgement.
Observers must never treat it as the write path; durable state lives in the
database. Services publish only after their transaction committed.
"""

import inspect
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger

REFERRAL_CHANNEL = "referrals"
TRUST_CHANNEL = "trust_score"

Callback = Callable[[Any], Awaitable[None] | None]
Unsubscribe = Callable[[], None]


class ChangeNotifier:
    """
    Per-user subscription registry.

    Example:
        notifier = ChangeNotifier()
        unsubscribe = notifier.subscribe(TRUST_CHANNEL, user_id, on_change)
        ...
        unsubscribe()
    """

    def __init__(self) -> None:
        """Initialize empty registry."""
        self._subscribers: dict[tuple[str, str], list[Callback]] = defaultdict(list)

    def subscribe(
        self, channel: str, user_id: str, callback: Callback
    ) -> Unsubscribe:
        """
        Register a callback for one user's changes on a channel.

        Args:
            channel: REFERRAL_CHANNEL or TRUST_CHANNEL
            user_id: Referrer (referral channel) or scored user (trust channel)
            callback: Sync or async callable receiving the changed DTO

        Returns:
            Function removing the subscription (safe to call twice)
        """
        key = (channel, user_id)
        self._subscribers[key].append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(key)
            if callbacks and callback in callbacks:
                callbacks.remove(callback)
                if not callbacks:
                    del self._subscribers[key]

        return unsubscribe

    def subscriber_count(self, channel: str, user_id: str) -> int:
        """Number of active subscriptions for a channel/user pair."""
        return len(self._subscribers.get((channel, user_id), []))

    async def publish(self, channel: str, user_id: str, payload: Any) -> int:
        """
        Deliver payload to current subscribers.

        A failing callback is logged and skipped; it never affects other
        subscribers or the publisher.

        Returns:
            Number of callbacks that completed
        """
        callbacks = list(self._subscribers.get((channel, user_id), []))
        delivered = 0

        for callback in callbacks:
            try:
                result = callback(payload)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception as e:
                logger.opt(exception=e).warning(
                    f"Change callback failed on {channel} for user {user_id}: {e}"
                )

        return delivered
