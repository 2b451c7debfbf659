"""Pydantic models for Blockbook API responses.

Models describe the fields the client relies on; unknown fields are
allowed so coin-specific extras pass validation. Field names follow the
wire format (camelCase).

Reference: https://github.com/trezor/blockbook/blob/master/docs/api.md
"""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class DetailLevel(str, enum.Enum):
    """Granularity of address and xpub queries."""

    BASIC = "basic"
    TOKENS = "tokens"
    TOKEN_BALANCES = "tokenBalances"
    TXIDS = "txids"
    TXS = "txs"


DEFAULT_DETAIL_LEVEL = DetailLevel.TXIDS


class BlockbookModel(BaseModel):
    """Base model for all Blockbook responses."""

    model_config = ConfigDict(extra="allow")


# System info


class BlockbookInfo(BlockbookModel):
    coin: str
    host: str
    version: str
    gitCommit: str
    buildTime: str
    syncMode: bool
    initialSync: bool
    inSync: bool
    bestHeight: int
    lastBlockTime: str
    inSyncMempool: bool
    lastMempoolTime: str
    mempoolSize: int
    decimals: int
    dbSize: int
    about: str


class BackendInfo(BlockbookModel):
    chain: str | None = None
    blocks: int | None = None
    headers: int | None = None
    bestBlockHash: str | None = None
    difficulty: str | None = None
    sizeOnDisk: int | None = None
    version: str | None = None
    subversion: str | None = None
    protocolVersion: str | None = None


class SystemInfo(BlockbookModel):
    """HTTP status (`GET /api/v2`)."""

    blockbook: BlockbookInfo
    backend: BackendInfo


class SystemInfoWs(BlockbookModel):
    """WebSocket `getInfo` response."""

    name: str
    shortcut: str
    decimals: int
    version: str
    bestHeight: int
    bestHash: str
    block0Hash: str
    testnet: bool


class BlockHashResponse(BlockbookModel):
    blockHash: str


class BlockHashResponseWs(BlockbookModel):
    hash: str


# Transactions


class TxInput(BlockbookModel):
    n: int
    txid: str | None = None
    vout: int | None = None
    sequence: int | None = None
    addresses: list[str] | None = None
    isAddress: bool
    value: str | None = None
    hex: str | None = None


class TxOutput(BlockbookModel):
    n: int
    value: str | None = None
    addresses: list[str] | None = None
    isAddress: bool
    spent: bool | None = None
    hex: str | None = None


class TokenTransfer(BlockbookModel):
    type: str
    from_: str = Field(alias="from")
    to: str
    token: str
    name: str | None = None
    symbol: str | None = None
    decimals: int | None = None
    value: str


class NormalizedTx(BlockbookModel):
    """Coin-independent transaction shape."""

    txid: str
    version: int | None = None
    vin: list[TxInput]
    vout: list[TxOutput]
    blockHash: str | None = None
    blockHeight: int
    confirmations: int
    blockTime: int
    value: str
    valueIn: str | None = None
    fees: str
    hex: str | None = None
    tokenTransfers: list[TokenTransfer] | None = None


class SpecificTx(BlockbookModel):
    """Backend-specific transaction; the shape depends on the coin."""

    txid: str | None = None
    hash: str | None = None


# Address and xpub details


class TokenDetails(BlockbookModel):
    type: str
    name: str
    path: str | None = None
    contract: str | None = None
    transfers: int
    symbol: str | None = None
    decimals: int | None = None


class TokenDetailsBalance(TokenDetails):
    balance: str | None = None
    totalReceived: str | None = None
    totalSent: str | None = None


class AddressDetailsBasic(BlockbookModel):
    page: int | None = None
    totalPages: int | None = None
    itemsOnPage: int | None = None
    address: str
    balance: str
    totalReceived: str | None = None
    totalSent: str | None = None
    unconfirmedBalance: str
    unconfirmedTxs: int
    txs: int
    nonTokenTxs: int | None = None


class AddressDetailsTokens(AddressDetailsBasic):
    tokens: list[TokenDetails] | None = None


class AddressDetailsTokenBalances(AddressDetailsBasic):
    tokens: list[TokenDetailsBalance] | None = None


class AddressDetailsTxids(AddressDetailsTokenBalances):
    txids: list[str] | None = None


class AddressDetailsTxs(AddressDetailsTokenBalances):
    transactions: list[NormalizedTx] | None = None


class XpubDetailsBasic(AddressDetailsBasic):
    usedTokens: int | None = None


class XpubDetailsTokens(XpubDetailsBasic):
    tokens: list[TokenDetails] | None = None


class XpubDetailsTokenBalances(XpubDetailsBasic):
    tokens: list[TokenDetailsBalance] | None = None


class XpubDetailsTxids(XpubDetailsTokenBalances):
    txids: list[str] | None = None


class XpubDetailsTxs(XpubDetailsTokenBalances):
    transactions: list[NormalizedTx] | None = None


ADDRESS_DETAILS_SCHEMAS: dict[DetailLevel, type[BlockbookModel]] = {
    DetailLevel.BASIC: AddressDetailsBasic,
    DetailLevel.TOKENS: AddressDetailsTokens,
    DetailLevel.TOKEN_BALANCES: AddressDetailsTokenBalances,
    DetailLevel.TXIDS: AddressDetailsTxids,
    DetailLevel.TXS: AddressDetailsTxs,
}

XPUB_DETAILS_SCHEMAS: dict[DetailLevel, type[BlockbookModel]] = {
    DetailLevel.BASIC: XpubDetailsBasic,
    DetailLevel.TOKENS: XpubDetailsTokens,
    DetailLevel.TOKEN_BALANCES: XpubDetailsTokenBalances,
    DetailLevel.TXIDS: XpubDetailsTxids,
    DetailLevel.TXS: XpubDetailsTxs,
}


# UTXOs


class UtxoDetails(BlockbookModel):
    txid: str
    vout: int
    value: str
    confirmations: int
    height: int | None = None
    lockTime: int | None = None
    coinbase: bool | None = None


class UtxoDetailsXpub(UtxoDetails):
    address: str | None = None
    path: str | None = None


# Blocks


class BlockInfo(BlockbookModel):
    page: int | None = None
    totalPages: int | None = None
    itemsOnPage: int | None = None
    hash: str
    previousBlockHash: str | None = None
    nextBlockHash: str | None = None
    height: int
    confirmations: int
    size: int
    time: int | None = None
    version: int
    merkleRoot: str
    nonce: str
    bits: str
    difficulty: str
    txCount: int
    txs: list[dict[str, Any]] | None = None


# Sending and subscriptions


class SendTxSuccess(BlockbookModel):
    result: str


class SubscribeResponse(BlockbookModel):
    subscribed: bool
