import asyncio
import threading
from collections.abc import Coroutine
from typing import Any, TypeVar

from loguru import logger

T = TypeVar("T")


class BackgroundLoop:
    """An asyncio event loop running forever on a daemon thread.

    ``run()`` submits a coroutine from the calling thread and waits for its
    result. Tasks the coroutine spawns, such as confirmation emails, keep
    running on the loop after ``run()`` has returned.
    """

    def __init__(self, name: str = "dentassist-loop") -> None:
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._loop.run_forever, name=name, daemon=True)
        self._thread.start()
        logger.debug("Background event loop {} started", name)

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    @property
    def running(self) -> bool:
        return self._thread.is_alive() and not self._loop.is_closed()

    def run(self, coro: Coroutine[Any, Any, T], timeout: float | None = None) -> T:
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result(timeout)

    def stop(self) -> None:
        if self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join()
        self._loop.close()
        logger.debug("Background event loop {} stopped", self._thread.name)
