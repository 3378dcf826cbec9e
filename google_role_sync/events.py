"""
Synchronous in-process event bus for social-login lifecycle events.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from .accounts import Account

LOGGER = logging.getLogger(__name__)

USER_CREATED = "social_auth.user.created"
USER_LOGIN = "social_auth.user.login"


@dataclass(frozen=True)
class UserEvent:
    account: Account

    def get_user(self) -> Account:
        return self.account


class EventDispatcher:
    def __init__(self):
        self._listeners: Dict[str, List[Callable[[Any], Any]]] = defaultdict(list)

    def subscribe(self, event_name: str, listener: Callable[[Any], Any]) -> None:
        self._listeners[event_name].append(listener)

    def add_subscriber(self, subscriber) -> None:
        """
        Register every method named by subscriber.get_subscribed_events().
        """
        for event_name, method_name in subscriber.get_subscribed_events().items():
            self.subscribe(event_name, getattr(subscriber, method_name))

    def dispatch(self, event_name: str, event: Any) -> List[Any]:
        listeners = self._listeners.get(event_name, [])
        LOGGER.debug("Dispatching %s to %d listener(s)", event_name, len(listeners))
        return [listener(event) for listener in listeners]
