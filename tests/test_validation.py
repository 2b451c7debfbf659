"""Tests for response validation."""

from __future__ import annotations

import pytest

from blockbook_client.errors import BlockbookValidationError
from blockbook_client.schemas import (
    AddressDetailsBasic,
    BlockHashResponse,
    TokenTransfer,
    UtxoDetails,
)
from blockbook_client.validation import ResponseValidator, schema_name


class TestSchemaName:
    """Tests for schema_name()."""

    def test_model(self):
        assert schema_name(BlockHashResponse) == "BlockHashResponse"

    def test_generic_list(self):
        assert schema_name(list[UtxoDetails]) == "list[UtxoDetails]"


class TestResponseValidator:
    """Tests for ResponseValidator."""

    def test_strict_accepts_and_returns_raw(self):
        validator = ResponseValidator()
        value = {"blockHash": "00ab", "extra": [1, 2]}

        assert validator.strict is True
        assert validator.validate(BlockHashResponse, value) is value

    def test_strict_rejects(self):
        validator = ResponseValidator(strict=True)

        with pytest.raises(BlockbookValidationError) as exc:
            validator.validate(BlockHashResponse, {"hash": "00ab"})

        assert exc.value.schema_name == "BlockHashResponse"
        assert exc.value.value == {"hash": "00ab"}
        assert "1 error(s)" in str(exc.value)

    def test_permissive_passes_anything(self):
        validator = ResponseValidator(strict=False)
        value = {"not": "a block hash"}

        assert validator.validate(BlockHashResponse, value) is value
        assert validator.validate(list[UtxoDetails], None) is None

    def test_strict_list(self):
        validator = ResponseValidator()

        with pytest.raises(BlockbookValidationError, match=r"list\[UtxoDetails\]"):
            validator.validate(list[UtxoDetails], {"txid": "t1"})

    def test_optional_fields(self):
        validator = ResponseValidator()
        value = {
            "address": "abc",
            "balance": "0",
            "unconfirmedBalance": "0",
            "unconfirmedTxs": 0,
            "txs": 0,
        }
        assert validator.validate(AddressDetailsBasic, value) == value

    def test_aliased_field(self):
        """Token transfers carry a `from` key."""
        validator = ResponseValidator()
        value = {
            "type": "ERC20",
            "from": "0x1",
            "to": "0x2",
            "token": "0x3",
            "value": "10",
        }
        assert validator.validate(TokenTransfer, value) == value
