"""
Graceful shutdown handling for the PR Pay agent backend.
In-flight agent sessions get time to finish before shared clients are closed.
"""

import asyncio
import logging
import signal
from contextlib import asynccontextmanager
from typing import Callable, List, Optional

logger = logging.getLogger("prpay.shutdown")


class GracefulShutdownManager:
    """
    Tracks in-flight requests and runs cleanup callbacks on shutdown.
    """

    def __init__(self, timeout: int = 30):
        self._shutdown_requested = False
        self._timeout = timeout
        self._shutdown_callbacks: List[Callable] = []
        self._request_count = 0
        self._lock = asyncio.Lock()

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown_requested

    @property
    def pending_requests(self) -> int:
        return self._request_count

    async def increment_requests(self) -> None:
        async with self._lock:
            self._request_count += 1

    async def decrement_requests(self) -> None:
        async with self._lock:
            self._request_count -= 1

    def add_shutdown_callback(self, callback: Callable) -> None:
        """Register a sync or async callback to run during shutdown."""
        self._shutdown_callbacks.append(callback)

    async def shutdown(self) -> None:
        if self._shutdown_requested:
            return

        self._shutdown_requested = True
        logger.info("Graceful shutdown initiated...")

        loop = asyncio.get_running_loop()
        start_time = loop.time()
        while self._request_count > 0:
            if loop.time() - start_time > self._timeout:
                logger.warning(
                    f"Shutdown timeout reached with {self._request_count} pending requests"
                )
                break
            logger.info(f"Waiting for {self._request_count} pending requests...")
            await asyncio.sleep(0.5)

        logger.info(f"Running {len(self._shutdown_callbacks)} shutdown callbacks...")
        for callback in self._shutdown_callbacks:
            try:
                result = callback()
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error(f"Error in shutdown callback: {e}")

        logger.info("Graceful shutdown complete")


_shutdown_manager: Optional[GracefulShutdownManager] = None


def get_shutdown_manager() -> GracefulShutdownManager:
    global _shutdown_manager
    if _shutdown_manager is None:
        _shutdown_manager = GracefulShutdownManager()
    return _shutdown_manager


def reset_shutdown_manager() -> None:
    """Drop the global manager so a fresh app lifespan starts clean."""
    global _shutdown_manager
    _shutdown_manager = None


def setup_signal_handlers(loop: asyncio.AbstractEventLoop) -> None:
    """Handle SIGTERM (containers) and SIGINT (Ctrl+C)."""
    shutdown_manager = get_shutdown_manager()

    def signal_handler(sig: signal.Signals) -> None:
        logger.info(f"Received signal {sig.name}")
        asyncio.create_task(shutdown_manager.shutdown())

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            signal.signal(sig, lambda s, f, sig=sig: signal_handler(sig))


@asynccontextmanager
async def lifespan_manager(app):
    """
    FastAPI lifespan context manager for startup/shutdown.

    Usage:
        app = FastAPI(lifespan=lifespan_manager)
    """
    from prpay.api.deps import close_clients

    logger.info("Application starting up...")
    shutdown_manager = get_shutdown_manager()

    try:
        setup_signal_handlers(asyncio.get_running_loop())
    except Exception as e:
        logger.warning(f"Could not setup signal handlers: {e}")

    shutdown_manager.add_shutdown_callback(close_clients)
    logger.info("Application startup complete")

    try:
        yield
    finally:
        logger.info("Application shutting down...")
        await shutdown_manager.shutdown()
        reset_shutdown_manager()


class RequestTrackingMiddleware:
    """
    Middleware that tracks in-flight requests for graceful shutdown.
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        shutdown_manager = get_shutdown_manager()
        if shutdown_manager.shutdown_requested:
            await send({
                "type": "http.response.start",
                "status": 503,
                "headers": [
                    [b"content-type", b"application/json"],
                    [b"connection", b"close"],
                ],
            })
            await send({
                "type": "http.response.body",
                "body": b'{"success": false, "error": "Service is shutting down", "retry_after": 5}',
            })
            return

        await shutdown_manager.increment_requests()
        try:
            await self.app(scope, receive, send)
        finally:
            await shutdown_manager.decrement_requests()
