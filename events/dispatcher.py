"""Job dispatch table mapping job names to async handlers."""

from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional
import logging

from core.exceptions import UnknownRouteError

logger = logging.getLogger(__name__)

JobHandler = Callable[[Dict[str, Any]], Awaitable[Any]]

INGEST_PRICE_HISTORY = "ingest-price-history"
BACKFILL_PRICE_HISTORY = "backfill-price-history"


class JobDispatcher:
    """
    Explicit job routing.

    Routes are registered at composition time and checked with ``validate``
    at startup, so a missing handler fails before the first job arrives.
    """

    def __init__(self, routes: Optional[Dict[str, JobHandler]] = None):
        self._routes: Dict[str, JobHandler] = {}
        for name, handler in (routes or {}).items():
            self.register(name, handler)

    def register(self, name: str, handler: JobHandler):
        self._routes[name] = handler
        logger.debug(f"Registered job: {name}")

    def names(self) -> List[str]:
        return list(self._routes.keys())

    def validate(self, required: Iterable[str]):
        """Raise UnknownRouteError listing every required job without a handler"""
        missing = [name for name in required if name not in self._routes]
        if missing:
            raise UnknownRouteError(
                f"Missing job routes: {', '.join(missing)}",
                context={"missing": missing, "registered": self.names()}
            )

    async def dispatch(self, name: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        handler = self._routes.get(name)
        if handler is None:
            raise UnknownRouteError(
                f"No handler registered for job: {name}",
                context={"job": name, "registered": self.names()}
            )

        logger.info(f"Dispatching job {name}")
        return await handler(payload or {})
