from collections import defaultdict
from typing import Callable, DefaultDict, List
import asyncio
import logging
logger = logging.getLogger(__name__)


class EventEmitter:
    """Dispatches scheduler events to registered listeners, one event at a time."""

    def __init__(self):
        self._listeners: DefaultDict[str, List[Callable]] = defaultdict(list)
        self._lock = asyncio.Lock()

    def on(self, event_name: str, callback: Callable):
        listeners = self._listeners[event_name]
        if callback not in listeners:
            listeners.append(callback)

    async def emit(self, event_name: str, *args, **kwargs):
        """Call every listener of ``event_name``. A failing listener is logged and skipped."""
        listeners = tuple(self._listeners.get(event_name, ()))
        if not listeners:
            return

        async with self._lock:
            for callback in listeners:
                try:
                    result = callback(*args, **kwargs)
                    if asyncio.iscoroutine(result):
                        await result
                except Exception as e:
                    logger.error(f"Error in {event_name} listener {getattr(callback, '__name__', callback)}: {e}")
