"""
In-process asynchronous publish/subscribe channel.

Delivery is at-most-once: handlers run in subscription order, a failing
handler is logged and never retried, and nothing is persisted.
"""

from typing import Any, Awaitable, Callable, Dict, Iterable, List
import logging

from core.exceptions import PipelineError, UnknownRouteError

logger = logging.getLogger(__name__)

EventHandler = Callable[[Dict[str, Any]], Awaitable[Any]]


class EventBus:
    """Channel-name -> handlers, restricted to the channels declared up front"""

    def __init__(self, channels: Iterable[str]):
        self._handlers: Dict[str, List[EventHandler]] = {channel: [] for channel in channels}

    @property
    def channels(self) -> List[str]:
        return list(self._handlers.keys())

    def _require(self, channel: str):
        if channel not in self._handlers:
            raise UnknownRouteError(
                f"Unknown event channel: {channel}",
                context={"channel": channel, "known_channels": self.channels}
            )

    def subscribe(self, channel: str, handler: EventHandler):
        self._require(channel)
        self._handlers[channel].append(handler)
        logger.debug(f"Subscribed {getattr(handler, '__qualname__', handler)!s} to {channel}")

    async def publish(self, channel: str, message: Dict[str, Any]) -> int:
        """
        Deliver ``message`` to every handler of ``channel``.

        Returns:
            Number of handlers that completed without raising
        """
        self._require(channel)
        delivered = 0

        for handler in self._handlers[channel]:
            try:
                await handler(message)
                delivered += 1
            except PipelineError as e:
                logger.error(
                    f"Handler for {channel} failed: {e.message}",
                    extra={"error_context": e.to_dict()}
                )
            except Exception:
                logger.exception(f"Handler for {channel} failed")

        logger.info(f"Published {channel} to {delivered}/{len(self._handlers[channel])} handlers")
        return delivered
