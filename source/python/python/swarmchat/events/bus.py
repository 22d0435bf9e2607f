import asyncio
from typing import AsyncIterator, Callable, List

from ..logs import get_logger
from .events import ChatEvent, End

logger = get_logger("events")

Subscriber = Callable[[ChatEvent], None]


class EventBus:
  """
  Fan-out channel for ChatEvents.

  Rendering and session logging subscribe independently; the router only
  ever calls emit(). Subscribers run synchronously in emit order. A failing
  subscriber is logged and skipped so it cannot break a turn.
  """

  def __init__(self):
    self._subscribers: List[Subscriber] = []

  def subscribe(self, callback: Subscriber) -> Callable[[], None]:
    self._subscribers.append(callback)

    def unsubscribe():
      if callback in self._subscribers:
        self._subscribers.remove(callback)

    return unsubscribe

  def emit(self, event: ChatEvent) -> None:
    for subscriber in list(self._subscribers):
      try:
        subscriber(event)
      except Exception:
        logger.exception(f"Event subscriber failed on '{event.type}' event")

  async def stream(self, until_end: bool = True) -> AsyncIterator[ChatEvent]:
    """
    Iterate over events as they are emitted.

    The subscription starts on the first iteration step, so start consuming
    before the turn begins. Stops after the `end` event when until_end is set.
    """
    queue: asyncio.Queue = asyncio.Queue()
    unsubscribe = self.subscribe(queue.put_nowait)
    try:
      while True:
        event = await queue.get()
        yield event
        if until_end and isinstance(event, End):
          return
    finally:
      unsubscribe()
