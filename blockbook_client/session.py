"""WebSocket session manager for Blockbook nodes.

One session owns at most one live socket. It handles:
- Connection lifecycle (disconnected, connecting, connected)
- Request/response correlation by request id
- Subscription registry and push dispatch
- Periodic liveness pings

All state lives on the session and is only touched from the event loop,
so no locking is needed. Socket activity arrives as normalized events
(TEXT, CLOSED, ERROR) and every state transition goes through
`_handle_event`.

Subscriptions and pending requests do not survive a reconnect: `connect`
starts from empty tables and callers must subscribe again.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from .config import DEFAULT_PING_INTERVAL, USER_AGENT
from .errors import (
    BlockbookClientError,
    BlockbookConnectionError,
    BlockbookPreconditionError,
    BlockbookProtocolError,
    BlockbookRemoteError,
    BlockbookTimeout,
)
from .nodes import NodePool
from .transport.ws import websocket_url
from .transport.ws_client import (
    BlockbookWsClient,
    BlockbookWsMessage,
    BlockbookWsMessageType,
)

_LOGGER = logging.getLogger(__name__)

SubscriptionCallback = Callable[[Any], Awaitable[None] | None]

STATE_DISCONNECTED = "disconnected"
STATE_CONNECTING = "connecting"
STATE_CONNECTED = "connected"


@dataclass(slots=True)
class _PendingRequest:
    """One in-flight request awaiting its reply."""

    method: str
    future: asyncio.Future[Any]
    timer: asyncio.TimerHandle | None = None


@dataclass(slots=True)
class _Subscription:
    """Callback registered for pushes carrying one id."""

    method: str
    callback: SubscriptionCallback


def _remote_error_message(data: Any, raw: Any) -> str | None:
    """Return the error text of a reply, or None for a successful one."""
    if not isinstance(data, dict) or not data.get("error"):
        return None
    error = data["error"]
    message = error.get("message") if isinstance(error, dict) else None
    return str(message) if message else str(raw)


class BlockbookWsSession:
    """Multiplexed WebSocket session to one Blockbook node at a time.

    Usage:
        session = BlockbookWsSession(NodePool(["https://btc1.trezor.io"]))
        await session.connect()
        info = await session.request("getInfo")
        sub_id, ack = await session.subscribe("subscribeNewBlock", {}, on_block)
        await session.disconnect()
    """

    def __init__(
        self,
        pool: NodePool,
        *,
        request_timeout: float = 5.0,
        ping_interval: float = DEFAULT_PING_INTERVAL,
        user_agent: str = USER_AGENT,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize session.

        Args:
            pool: Node pool; also mints request ids
            request_timeout: Seconds to wait for each reply
            ping_interval: Seconds between liveness pings
            user_agent: User-Agent header for the handshake
            logger: Logger replacing the module logger
        """
        self._pool = pool
        self._request_timeout = request_timeout
        self._ping_interval = ping_interval
        self._user_agent = user_agent
        self._logger = logger or _LOGGER

        # Connection state
        self._ws: BlockbookWsClient | None = None
        self._node: str | None = None
        self._state = STATE_DISCONNECTED
        self._listen_task: asyncio.Task[None] | None = None
        self._ping_task: asyncio.Task[None] | None = None
        self._close_waiter: asyncio.Future[None] | None = None

        # Correlation tables
        self._pending: dict[str, _PendingRequest] = {}
        self._subscriptions: dict[str, _Subscription] = {}
        self._slots: dict[str, str] = {}
        self._callback_tasks: set[asyncio.Task[Any]] = set()

        self._state_callback: Callable[[str], None] | None = None

    # -------------------------------------------------------------------------
    # Public API: Connection Management
    # -------------------------------------------------------------------------

    @property
    def is_connected(self) -> bool:
        return self._state == STATE_CONNECTED

    @property
    def connection_state(self) -> str:
        return self._state

    @property
    def node(self) -> str | None:
        """WebSocket URL of the current or last connection."""
        return self._node

    def on_connection_state_changed(self, callback: Callable[[str], None]) -> None:
        """Register callback for connection state changes.

        Callback receives state: "connecting", "connected", "disconnected"
        """
        self._state_callback = callback

    async def connect(self) -> None:
        """Open a socket to the next pooled node.

        No-op when already connected. Concurrent calls are not guarded:
        awaiting one connect before starting another is the caller's job.

        Raises:
            BlockbookTimeout: If the handshake does not finish in time
            BlockbookHandshakeError: If the node rejects the handshake
            BlockbookConnectionError: If the node is unreachable
        """
        if self.is_connected:
            return

        self._pending = {}
        self._subscriptions = {}
        self._slots = {}

        url = websocket_url(self._pool.next_node())
        self._node = url
        self._set_state(STATE_CONNECTING)

        ws_client = BlockbookWsClient()
        try:
            await ws_client.connect(
                url,
                user_agent=self._user_agent,
                timeout=self._request_timeout,
            )
        except BlockbookClientError as err:
            self._logger.warning("[%s] Socket connect error: %s", url, err)
            self._set_state(STATE_DISCONNECTED)
            raise

        self._ws = ws_client
        self._set_state(STATE_CONNECTED)
        self._logger.info("[%s] Socket connected", url)

        self._listen_task = asyncio.create_task(self._listen(ws_client))
        self._ping_task = asyncio.create_task(self._ping_loop())

    async def disconnect(self) -> None:
        """Close the socket and wait for the close to complete.

        No-op when not connected. Pending requests are left to time out.

        Raises:
            BlockbookConnectionError: If the socket reports an error while closing
        """
        if not self.is_connected or self._ws is None:
            return

        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._close_waiter = waiter
        await self._ws.close()
        await waiter

    async def close(self) -> None:
        """Disconnect and stop background tasks.

        Tasks are stopped even when the socket reports an error while closing.
        """
        try:
            await self.disconnect()
        finally:
            for task in (self._ping_task, self._listen_task):
                if task is not None and not task.done():
                    task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await task
            self._ping_task = None
            self._listen_task = None

    # -------------------------------------------------------------------------
    # Public API: Requests and Subscriptions
    # -------------------------------------------------------------------------

    async def request(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        request_id: str | None = None,
    ) -> Any:
        """Send one request and wait for the correlated reply.

        Args:
            method: Blockbook WebSocket method, e.g. "getTransaction"
            params: Method parameters, omitted from the frame when None
            request_id: Explicit id; minted from the node pool counter when None

        Returns:
            The reply's `data` payload.

        Raises:
            BlockbookPreconditionError: If the socket is not connected
            BlockbookConnectionError: If the frame cannot be sent
            BlockbookTimeout: If no reply arrives within the request timeout
            BlockbookRemoteError: If the node replies with an error
        """
        ws = self._require_socket(method)
        if request_id is None:
            request_id = self._pool.next_request_id()

        loop = asyncio.get_running_loop()
        pending = _PendingRequest(method=method, future=loop.create_future())
        pending.timer = loop.call_later(
            self._request_timeout, self._expire_request, request_id, pending
        )
        self._pending[request_id] = pending

        payload: dict[str, Any] = {"id": request_id, "method": method}
        if params is not None:
            payload["params"] = params

        try:
            await ws.send_json(payload)
        except BlockbookClientError:
            self._drop_pending(request_id, pending)
            raise

        return await pending.future

    async def subscribe(
        self,
        method: str,
        params: dict[str, Any] | None,
        callback: SubscriptionCallback,
    ) -> tuple[str, Any]:
        """Subscribe to pushes and wait for the acknowledgement.

        The subscribe request is sent under the subscription's own id, so
        every later push with that id reaches `callback`.

        Returns:
            Tuple of (subscription id, acknowledgement data).
        """
        return await self._subscribe(method, params, callback)

    async def unsubscribe(
        self,
        method: str,
        params: dict[str, Any] | None,
        subscription_id: str,
    ) -> Any:
        """Remove a subscription locally, then tell the node.

        The local removal takes effect immediately, whatever the node replies.
        """
        self._subscriptions.pop(subscription_id, None)
        return await self.request(method, params)

    async def subscribe_slot(
        self,
        slot: str,
        method: str,
        params: dict[str, Any] | None,
        callback: SubscriptionCallback,
    ) -> tuple[str, Any]:
        """Subscribe into a well-known slot, replacing what it held."""
        previous = self._slots.pop(slot, None)
        if previous is not None:
            self._subscriptions.pop(previous, None)
        return await self._subscribe(method, params, callback, slot=slot)

    async def unsubscribe_slot(self, slot: str, method: str) -> Any:
        """Unsubscribe a well-known slot; reports unsubscribed when empty."""
        self._require_socket(method)
        subscription_id = self._slots.pop(slot, None)
        if subscription_id is None:
            return {"subscribed": False}
        return await self.unsubscribe(method, {}, subscription_id)

    # -------------------------------------------------------------------------
    # Internal: Correlation
    # -------------------------------------------------------------------------

    def _require_socket(self, method: str) -> BlockbookWsClient:
        if not self.is_connected or self._ws is None:
            raise BlockbookPreconditionError(
                f"WebSocket must be connected to call {method}"
            )
        return self._ws

    async def _subscribe(
        self,
        method: str,
        params: dict[str, Any] | None,
        callback: SubscriptionCallback,
        *,
        slot: str | None = None,
    ) -> tuple[str, Any]:
        self._require_socket(method)
        subscription_id = self._pool.next_request_id()
        self._subscriptions[subscription_id] = _Subscription(method, callback)
        if slot is not None:
            self._slots[slot] = subscription_id
        ack = await self.request(method, params, request_id=subscription_id)
        return subscription_id, ack

    def _expire_request(self, request_id: str, pending: _PendingRequest) -> None:
        if self._pending.get(request_id) is pending:
            del self._pending[request_id]
        if not pending.future.done():
            pending.future.set_exception(
                BlockbookTimeout(
                    f"Timeout waiting for websocket {pending.method} response "
                    f"(id: {request_id})"
                )
            )

    def _drop_pending(self, request_id: str, pending: _PendingRequest) -> None:
        if self._pending.get(request_id) is pending:
            del self._pending[request_id]
        if pending.timer is not None:
            pending.timer.cancel()

    # -------------------------------------------------------------------------
    # Internal: Event Handling
    # -------------------------------------------------------------------------

    def _set_state(self, state: str) -> None:
        if self._state != state:
            self._logger.debug("[%s] State: %s → %s", self._node, self._state, state)
            self._state = state
            if self._state_callback:
                self._state_callback(state)

    async def _listen(self, ws_client: BlockbookWsClient) -> None:
        """Feed socket events into the state machine until it closes."""
        try:
            async for msg in ws_client:
                if ws_client is not self._ws:
                    break
                self._handle_event(msg)
                if msg.type is not BlockbookWsMessageType.TEXT:
                    break
        except asyncio.CancelledError:
            self._logger.debug("[%s] Listener cancelled", self._node)
            raise
        except Exception as err:
            self._logger.exception(
                "[%s] Unexpected listener error: %s", self._node, err
            )
            if ws_client is self._ws:
                self._handle_event(BlockbookWsMessage(BlockbookWsMessageType.ERROR))
        finally:
            # Iteration can only end without a CLOSED event if the wrapper broke.
            if ws_client is self._ws and self.is_connected:
                self._handle_event(BlockbookWsMessage(BlockbookWsMessageType.CLOSED))

    def _handle_event(self, message: BlockbookWsMessage) -> None:
        """Apply one socket event to the session."""
        if message.type is BlockbookWsMessageType.TEXT:
            self._dispatch(message)
        elif message.type is BlockbookWsMessageType.CLOSED:
            self._logger.warning("[%s] Socket closed", self._node)
            self._on_socket_closed(None)
        else:
            self._logger.warning("[%s] Socket error", self._node)
            if self._ws is not None:
                self._ws.terminate()
            self._on_socket_closed(BlockbookConnectionError("WebSocket error"))

    def _on_socket_closed(self, error: BlockbookClientError | None) -> None:
        self._ws = None
        self._set_state(STATE_DISCONNECTED)

        ping_task = self._ping_task
        self._ping_task = None
        if ping_task is not None and ping_task is not asyncio.current_task():
            ping_task.cancel()

        waiter = self._close_waiter
        self._close_waiter = None
        if waiter is not None and not waiter.done():
            if error is None:
                waiter.set_result(None)
            else:
                waiter.set_exception(error)

    def _dispatch(self, message: BlockbookWsMessage) -> None:
        """Route one inbound frame to its pending request or subscription.

        A pending request wins over a subscription sharing the same id.
        Frames that cannot be attributed to anything are logged and dropped.
        """
        self._logger.debug("[%s] Socket message: %s", self._node, message.data)
        try:
            response = BlockbookWsClient.decode_json(message)
            request_id = response.get("id")
            if not isinstance(request_id, str):
                raise BlockbookProtocolError(
                    "Received websocket data without a valid ID"
                )
        except BlockbookProtocolError as err:
            self._logger.error("[%s] Dropping websocket frame: %s", self._node, err)
            return

        result = response.get("data")
        error_message = _remote_error_message(result, message.data)

        pending = self._pending.pop(request_id, None)
        if pending is not None:
            if pending.timer is not None:
                pending.timer.cancel()
            if pending.future.done():
                return
            if error_message is not None:
                pending.future.set_exception(
                    BlockbookRemoteError(error_message, method=pending.method)
                )
            else:
                pending.future.set_result(result)
            return

        subscription = self._subscriptions.get(request_id)
        if subscription is not None:
            if error_message is not None:
                self._logger.error(
                    "[%s] Received error response for %s subscription: %s",
                    self._node,
                    subscription.method,
                    error_message,
                )
            self._notify(subscription, result)
            return

        self._logger.warning(
            "[%s] Unrecognized websocket data (id: %s)", self._node, request_id
        )

    def _notify(self, subscription: _Subscription, data: Any) -> None:
        try:
            result = subscription.callback(data)
        except Exception as err:
            self._logger.exception(
                "[%s] %s callback error: %s", self._node, subscription.method, err
            )
            return

        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._callback_tasks.add(task)
            task.add_done_callback(self._callback_done)

    def _callback_done(self, task: asyncio.Task[Any]) -> None:
        self._callback_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            self._logger.error(
                "[%s] Subscription callback error: %s", self._node, task.exception()
            )

    # -------------------------------------------------------------------------
    # Internal: Keepalive
    # -------------------------------------------------------------------------

    async def _ping_loop(self) -> None:
        """Ping periodically; terminate the socket when a ping fails."""
        try:
            while True:
                await asyncio.sleep(self._ping_interval)
                try:
                    await self.request("ping", {})
                except BlockbookClientError as err:
                    self._logger.warning(
                        "[%s] Ping failed, terminating socket: %s", self._node, err
                    )
                    if self._ws is not None:
                        self._ws.terminate()
                    return
        except asyncio.CancelledError:
            self._logger.debug("[%s] Keepalive cancelled", self._node)
