"""Blockbook query facade over HTTP and WebSocket transports.

Every query prefers the WebSocket session while it is connected and falls
back to HTTP against the next pooled node otherwise. Raw results are
checked by the response validator before they are returned.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

import aiohttp

from .config import BlockbookConfig
from .errors import BlockbookArgumentError, BlockbookPreconditionError
from .nodes import NodePool
from .schemas import (
    ADDRESS_DETAILS_SCHEMAS,
    DEFAULT_DETAIL_LEVEL,
    XPUB_DETAILS_SCHEMAS,
    BlockHashResponse,
    BlockHashResponseWs,
    BlockInfo,
    DetailLevel,
    NormalizedTx,
    SendTxSuccess,
    SpecificTx,
    SubscribeResponse,
    SystemInfo,
    SystemInfoWs,
    UtxoDetails,
    UtxoDetailsXpub,
)
from .session import BlockbookWsSession, SubscriptionCallback
from .transport.http import BlockbookHttpClient
from .validation import ResponseValidator

_LOGGER = logging.getLogger(__name__)

SLOT_NEW_BLOCK = "newBlock"
SLOT_NEW_TRANSACTION = "newTransaction"
SLOT_ADDRESSES = "addresses"


def _options(**options: Any) -> dict[str, Any]:
    """Keep only the options the caller set."""
    return {key: value for key, value in options.items() if value is not None}


def _detail_level(details: DetailLevel | str) -> DetailLevel:
    try:
        return DetailLevel(details)
    except ValueError as err:
        raise BlockbookArgumentError(f"Unknown detail level: {details!r}") from err


def _field(response: Any, key: str) -> Any:
    """Read one field of an object response; None when the shape is off."""
    if isinstance(response, dict):
        return response.get(key)
    return None


class BlockbookClient:
    """Blockbook client with HTTP and WebSocket support over multiple nodes.

    Usage:
        config = BlockbookConfig(nodes=["https://btc1.trezor.io"])
        async with BlockbookClient(config) as bb:
            tx = await bb.get_tx(txid)          # HTTP
            await bb.connect()
            tx = await bb.get_tx(txid)          # WebSocket
            await bb.subscribe_new_block(on_block)

    Coin-specific subclasses may narrow the schema class attributes.
    """

    normalized_tx_schema: Any = NormalizedTx
    specific_tx_schema: Any = SpecificTx
    block_info_schema: Any = BlockInfo
    address_details_schemas: Mapping[DetailLevel, Any] = ADDRESS_DETAILS_SCHEMAS
    xpub_details_schemas: Mapping[DetailLevel, Any] = XPUB_DETAILS_SCHEMAS

    def __init__(
        self,
        config: BlockbookConfig,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """Initialize client.

        Args:
            config: Client configuration
            session: Shared aiohttp session; one is created and owned when omitted

        Raises:
            BlockbookConfigError: If the node list is empty or malformed
        """
        self.config = config
        self.pool = NodePool(config.nodes)
        self.validator = ResponseValidator(strict=not config.disable_type_validation)
        self._logger = config.logger or _LOGGER
        self._request_timeout = config.request_timeout

        self._session = session
        self._owns_session = session is None
        self._http: BlockbookHttpClient | None = None

        self.ws = BlockbookWsSession(
            self.pool,
            request_timeout=config.request_timeout,
            ping_interval=config.ping_interval,
            user_agent=config.user_agent,
            logger=config.logger,
        )

    @property
    def nodes(self) -> tuple[str, ...]:
        return self.pool.nodes

    @property
    def is_connected(self) -> bool:
        """True while queries go over the WebSocket."""
        return self.ws.is_connected

    async def __aenter__(self) -> BlockbookClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Transports
    # -------------------------------------------------------------------------

    def _http_client(self) -> BlockbookHttpClient:
        if self._http is None:
            if self._session is None:
                self._session = aiohttp.ClientSession()
            self._http = BlockbookHttpClient(
                self._session, user_agent=self.config.user_agent
            )
        return self._http

    async def http_request(
        self,
        method: str,
        path: str,
        params: Mapping[str, Any] | None = None,
        body: Any = None,
        *,
        raw_body: str | None = None,
    ) -> Any:
        """Send one HTTP request to the next node in round-robin order."""
        node = self.pool.next_node()
        self._logger.debug("[%s] HTTP %s %s", node, method, path)
        return await self._http_client().request(
            node,
            method,
            path,
            params,
            body,
            timeout=self._request_timeout,
            raw_body=raw_body,
        )

    async def ws_request(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        request_id: str | None = None,
    ) -> Any:
        """Send one request over the connected WebSocket."""
        return await self.ws.request(method, params, request_id)

    async def _query(
        self,
        ws_method: str,
        ws_params: dict[str, Any],
        http_path: str,
        http_params: Mapping[str, Any] | None = None,
    ) -> Any:
        if self.ws.is_connected:
            return await self.ws.request(ws_method, ws_params)
        return await self.http_request("GET", http_path, http_params)

    async def connect(self) -> None:
        """Open the WebSocket; queries use it until it closes."""
        await self.ws.connect()

    async def disconnect(self) -> None:
        """Close the WebSocket; queries fall back to HTTP."""
        await self.ws.disconnect()

    async def close(self) -> None:
        """Close the WebSocket and the HTTP session if this client owns it."""
        try:
            await self.ws.close()
        finally:
            if self._owns_session and self._session is not None:
                await self._session.close()
                self._session = None
                self._http = None

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def get_info(self) -> dict[str, Any]:
        """WebSocket-only node summary.

        Raises:
            BlockbookPreconditionError: If the WebSocket is not connected
        """
        if not self.ws.is_connected:
            raise BlockbookPreconditionError(
                "WebSocket must be connected to call get_info"
            )
        response = await self.ws.request("getInfo")
        return self.validator.validate(SystemInfoWs, response)

    async def get_status(self) -> dict[str, Any]:
        """HTTP-only node and backend status."""
        response = await self.http_request("GET", "/api/v2")
        return self.validator.validate(SystemInfo, response)

    async def get_block_hash(self, block_number: int) -> str:
        if self.ws.is_connected:
            response = await self.ws.request("getBlockHash", {"height": block_number})
            checked = self.validator.validate(BlockHashResponseWs, response)
            return _field(checked, "hash")
        response = await self.http_request(
            "GET", f"/api/v2/block-index/{block_number}"
        )
        checked = self.validator.validate(BlockHashResponse, response)
        return _field(checked, "blockHash")

    async def get_tx(self, txid: str) -> dict[str, Any]:
        response = await self._query(
            "getTransaction", {"txid": txid}, f"/api/v2/tx/{txid}"
        )
        return self.validator.validate(self.normalized_tx_schema, response)

    async def get_tx_specific(self, txid: str) -> dict[str, Any]:
        response = await self._query(
            "getTransactionSpecific", {"txid": txid}, f"/api/v2/tx-specific/{txid}"
        )
        return self.validator.validate(self.specific_tx_schema, response)

    async def get_address_details(
        self,
        address: str,
        *,
        details: DetailLevel | str = DEFAULT_DETAIL_LEVEL,
        page: int | None = None,
        page_size: int | None = None,
        from_height: int | None = None,
        to_height: int | None = None,
        contract: str | None = None,
    ) -> dict[str, Any]:
        """Balances and history of one address.

        The response shape, and so the schema used, follows `details`.
        """
        level = _detail_level(details)
        options = _options(
            page=page,
            pageSize=page_size,
            to=to_height,
            contract=contract,
            **{"from": from_height},
        )
        options["details"] = level.value
        response = await self._query(
            "getAccountInfo",
            {"descriptor": address, **options},
            f"/api/v2/address/{address}",
            options,
        )
        return self.validator.validate(self.address_details_schemas[level], response)

    async def get_xpub_details(
        self,
        xpub: str,
        *,
        details: DetailLevel | str = DEFAULT_DETAIL_LEVEL,
        tokens: str = "derived",
        page: int | None = None,
        page_size: int | None = None,
        from_height: int | None = None,
        to_height: int | None = None,
    ) -> dict[str, Any]:
        """Balances and history of an extended public key.

        `tokens` selects which derived addresses are listed: "nonzero",
        "used" or "derived".
        """
        level = _detail_level(details)
        options = _options(
            page=page,
            pageSize=page_size,
            to=to_height,
            **{"from": from_height},
        )
        options["details"] = level.value
        options["tokens"] = tokens
        response = await self._query(
            "getAccountInfo",
            {"descriptor": xpub, **options},
            f"/api/v2/xpub/{xpub}",
            options,
        )
        return self.validator.validate(self.xpub_details_schemas[level], response)

    async def get_utxos_for_address(
        self, address: str, *, confirmed: bool | None = None
    ) -> list[dict[str, Any]]:
        options = _options(confirmed=confirmed)
        response = await self._query(
            "getAccountUtxo",
            {"descriptor": address, **options},
            f"/api/v2/utxo/{address}",
            options,
        )
        return self.validator.validate(list[UtxoDetails], response)

    async def get_utxos_for_xpub(
        self, xpub: str, *, confirmed: bool | None = None
    ) -> list[dict[str, Any]]:
        options = _options(confirmed=confirmed)
        response = await self._query(
            "getAccountUtxo",
            {"descriptor": xpub, **options},
            f"/api/v2/utxo/{xpub}",
            options,
        )
        return self.validator.validate(list[UtxoDetailsXpub], response)

    async def get_block(
        self, block: str | int, *, page: int | None = None
    ) -> dict[str, Any]:
        """Block by height or hash. HTTP only; there is no WebSocket method."""
        response = await self.http_request(
            "GET", f"/api/v2/block/{block}", _options(page=page)
        )
        return self.validator.validate(self.block_info_schema, response)

    async def send_tx(self, tx_hex: str) -> str:
        """Broadcast a signed transaction and return its txid."""
        if self.ws.is_connected:
            response = await self.ws.request("sendTransaction", {"hex": tx_hex})
        else:
            # POST needs the trailing slash; GET fails for large transactions.
            response = await self.http_request(
                "POST", "/api/v2/sendtx/", raw_body=tx_hex
            )
        return _field(self.validator.validate(SendTxSuccess, response), "result")

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    async def _subscribe_slot(
        self,
        slot: str,
        method: str,
        params: dict[str, Any],
        callback: SubscriptionCallback,
    ) -> dict[str, Any]:
        _, ack = await self.ws.subscribe_slot(slot, method, params, callback)
        return self.validator.validate(SubscribeResponse, ack)

    async def _unsubscribe_slot(self, slot: str, method: str) -> dict[str, Any]:
        ack = await self.ws.unsubscribe_slot(slot, method)
        return self.validator.validate(SubscribeResponse, ack)

    async def subscribe_new_block(
        self, callback: SubscriptionCallback
    ) -> dict[str, Any]:
        """Call `callback` with every new block header until unsubscribed."""
        return await self._subscribe_slot(
            SLOT_NEW_BLOCK, "subscribeNewBlock", {}, callback
        )

    async def unsubscribe_new_block(self) -> dict[str, Any]:
        return await self._unsubscribe_slot(SLOT_NEW_BLOCK, "unsubscribeNewBlock")

    async def subscribe_new_transaction(
        self, callback: SubscriptionCallback
    ) -> dict[str, Any]:
        """Call `callback` with every new mempool transaction until unsubscribed."""
        return await self._subscribe_slot(
            SLOT_NEW_TRANSACTION, "subscribeNewTransaction", {}, callback
        )

    async def unsubscribe_new_transaction(self) -> dict[str, Any]:
        return await self._unsubscribe_slot(
            SLOT_NEW_TRANSACTION, "unsubscribeNewTransaction"
        )

    async def subscribe_addresses(
        self, addresses: Iterable[str], callback: SubscriptionCallback
    ) -> dict[str, Any]:
        """Watch addresses; `callback` gets `{"address", "tx"}` pushes.

        Subscribing again replaces the previously watched set.
        """
        return await self._subscribe_slot(
            SLOT_ADDRESSES,
            "subscribeAddresses",
            {"addresses": list(addresses)},
            callback,
        )

    async def unsubscribe_addresses(self) -> dict[str, Any]:
        return await self._unsubscribe_slot(SLOT_ADDRESSES, "unsubscribeAddresses")
