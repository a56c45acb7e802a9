"""Raw WebSocket push channel with fixed-interval reconnect."""

import asyncio
import json
from typing import Any

import aiohttp

from planboard.adapters.base import BaseAdapter

DEFAULT_RECONNECT_DELAY = 1.5


class PushChannel(BaseAdapter):
    """Single persistent push connection per session.

    Inbound text frames are decoded as JSON (falling back to the raw string)
    and queued on ``messages``. While started, a dropped or failed connection
    is retried after ``reconnect_delay`` seconds, forever. Socket errors are
    logged, never raised.
    """

    def __init__(
        self,
        url: str,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        super().__init__("push")
        self.url = url
        self.reconnect_delay = reconnect_delay
        self.messages: asyncio.Queue[Any] = asyncio.Queue()
        self._session = session
        self._owns_session = session is None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._retry_task: asyncio.Task[None] | None = None
        self._enabled = False
        self.attempts = 0

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def connect(self) -> bool:
        """Enable the channel and make one connection attempt.

        Returns True if the socket is open. On failure a retry is scheduled.
        """
        self._enabled = True
        return await self._open()

    async def disconnect(self) -> None:
        await self.stop()

    async def health_check(self) -> bool:
        return self._ws is not None and not self._ws.closed

    def start(self) -> None:
        """Enable the channel and connect in the background.

        A no-op while a socket is being read or a connect is pending.
        """
        self._enabled = True
        if self._reader_task is not None and not self._reader_task.done():
            return
        if self._retry_task is None or self._retry_task.done():
            self._retry_task = asyncio.ensure_future(self._open())

    async def stop(self) -> None:
        """Close the socket and cancel the reader and any pending retry."""
        self._enabled = False

        for task in (self._retry_task, self._reader_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._retry_task = None
        self._reader_task = None

        await self._close_socket()

        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

        self._connected = False
        self.logger.info("Push channel stopped")

    async def _open(self) -> bool:
        if not self._enabled:
            return False

        self.attempts += 1
        try:
            if self._session is None or self._session.closed:
                self._session = aiohttp.ClientSession()
                self._owns_session = True
            self._ws = await self._session.ws_connect(self.url)
        except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as e:
            self.logger.warning("Push connect failed", url=self.url, error=str(e))
            self._schedule_reconnect()
            return False

        self._connected = True
        self.logger.info("Push channel connected", url=self.url)
        self._reader_task = asyncio.ensure_future(self._read_loop(self._ws))
        return True

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        """Queue inbound frames until the socket closes, then reconnect."""
        try:
            async for raw in ws:
                if raw.type == aiohttp.WSMsgType.TEXT:
                    self.messages.put_nowait(decode_frame(raw.data))
                elif raw.type == aiohttp.WSMsgType.BINARY:
                    try:
                        text = raw.data.decode("utf-8")
                    except UnicodeDecodeError:
                        self.logger.debug("Ignoring undecodable binary frame")
                        continue
                    self.messages.put_nowait(decode_frame(text))
                elif raw.type == aiohttp.WSMsgType.ERROR:
                    self.logger.warning("Push channel error", error=str(ws.exception()))
                    break
        except asyncio.CancelledError:
            raise
        except (aiohttp.ClientError, OSError) as e:
            self.logger.warning("Push read failed", error=str(e))

        self._connected = False
        await self._close_socket()
        if self._enabled:
            self.logger.info("Push channel closed, reconnecting", delay=self.reconnect_delay)
            self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if not self._enabled:
            return
        current = asyncio.current_task()
        if (
            self._retry_task is not None
            and not self._retry_task.done()
            and self._retry_task is not current
        ):
            return
        self._retry_task = asyncio.ensure_future(self._reconnect_after_delay())

    async def _reconnect_after_delay(self) -> None:
        await asyncio.sleep(self.reconnect_delay)
        await self._open()

    async def _close_socket(self) -> None:
        ws, self._ws = self._ws, None
        if ws is not None and not ws.closed:
            try:
                await ws.close()
            except (aiohttp.ClientError, OSError) as e:
                self.logger.debug("Error closing push socket", error=str(e))


def decode_frame(text: str) -> Any:
    """JSON-decode a text frame; non-JSON text is passed through as-is."""
    try:
        return json.loads(text)
    except ValueError:
        return text
