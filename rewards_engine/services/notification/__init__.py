"""Change notification package."""

from rewards_engine.services.notification.change_notifier import (
    REFERRAL_CHANNEL,
    TRUST_CHANNEL,
    ChangeNotifier,
)

__all__ = [
    "ChangeNotifier",
    "REFERRAL_CHANNEL",
    "TRUST_CHANNEL",
]
