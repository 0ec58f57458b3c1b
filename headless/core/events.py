"""Event subscriptions with automatic per-domain enable/disable."""

import asyncio
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Sequence

from ..utils.logger import HeadlessLogger

EventHandler = Callable[[Dict[str, Any]], Any]


def domain_name(event_name: str) -> str:
    """Domain of a method or event name, e.g. 'DOM' for 'DOM.documentUpdated'."""
    return event_name.split(".", 1)[0]


def handlers_for_domain(registry: Mapping[str, Sequence[EventHandler]], domain: str) -> bool:
    """Whether any event of ``domain`` has at least one handler in ``registry``."""
    return any(
        handlers
        for event_name, handlers in registry.items()
        if domain_name(event_name) == domain
    )


class Deregistration:
    """
    Removes one registered handler when awaited.

    Only the first call has an effect; later calls return immediately, so the
    domain is never disabled twice for the same registration.
    """

    def __init__(self, subscriptions: 'EventSubscriptions', event_name: str, handler: EventHandler):
        self._subscriptions = subscriptions
        self.event_name = event_name
        self.handler = handler
        self._done = False

    @property
    def active(self) -> bool:
        return not self._done

    async def __call__(self) -> None:
        if self._done:
            return
        self._done = True
        await self._subscriptions.deregister(self.event_name, self.handler)

    def __repr__(self) -> str:
        return f"<Deregistration event={self.event_name} active={self.active}>"


class EventSubscriptions:
    """
    Registry of event handlers for one connection.

    A domain is enabled exactly while at least one of its events has a
    handler. That state is always derived from the registry itself; the only
    extra state is one lock per domain so that concurrent first registrations
    (or last deregistrations) issue a single enable (or disable).
    """

    def __init__(
        self,
        execute: Callable[[str, Dict[str, Any]], Awaitable[Any]],
        logger: HeadlessLogger,
    ):
        self._execute = execute
        self._logger = logger
        self._handlers: Dict[str, List[EventHandler]] = {}
        self._domain_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @property
    def registry(self) -> Mapping[str, List[EventHandler]]:
        """Event name to registered handlers."""
        return self._handlers

    def handlers(self, event_name: str) -> List[EventHandler]:
        # Lists are replaced, never mutated, so callers get a stable snapshot
        return self._handlers.get(event_name, [])

    def is_domain_enabled(self, domain: str) -> bool:
        return handlers_for_domain(self._handlers, domain)

    async def register(self, event_name: str, handler: EventHandler) -> Deregistration:
        """
        Register ``handler`` for ``event_name``.

        Enables the event's domain first when it has no handlers yet; the
        handler is only added once the enable command succeeded.

        Args:
            event_name: Event name, e.g. 'Network.responseReceived'
            handler: Callable or coroutine function taking the event params

        Returns:
            Awaitable capability that removes this handler again
        """
        domain = domain_name(event_name)
        async with self._domain_locks[domain]:
            if not handlers_for_domain(self._handlers, domain):
                self._logger.debug("events:domain", "Enabling domain", domain=domain)
                await self._execute(f"{domain}.enable", {})
            self._handlers[event_name] = [*self._handlers.get(event_name, []), handler]

        self._logger.debug("events:register", "Handler registered", event_name=event_name)
        return Deregistration(self, event_name, handler)

    async def deregister(self, event_name: str, handler: EventHandler) -> None:
        """Remove one registration of ``handler`` and disable an empty domain."""
        domain = domain_name(event_name)
        async with self._domain_locks[domain]:
            remaining = list(self._handlers.get(event_name, []))
            if handler not in remaining:
                return
            remaining.remove(handler)
            if remaining:
                self._handlers[event_name] = remaining
            else:
                del self._handlers[event_name]

            self._logger.debug("events:deregister", "Handler removed", event_name=event_name)
            if not handlers_for_domain(self._handlers, domain):
                self._logger.debug("events:domain", "Disabling domain", domain=domain)
                await self._execute(f"{domain}.disable", {})
