"""Tests for the JSON-RPC client against a local aiohttp server."""

from __future__ import annotations

import asyncio
import base64

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.signature import Signature

from solexec.errors import RpcError
from solexec.rpc import RpcClient, SendConfig, satisfies_commitment
from solexec.transfer import build_transfer

from .conftest import BLOCKHASH, with_node


class TestCall:
    def test_result(self) -> None:
        result, node = with_node(
            {"getBalance": {"result": {"context": {"slot": 1}, "value": 2_500}}},
            lambda c: c.get_balance("Addr"),
        )
        assert result == 2_500
        assert node.requests[0]["jsonrpc"] == "2.0"
        assert node.requests[0]["params"] == ["Addr", {"commitment": "finalized"}]

    def test_request_ids_increase(self) -> None:
        async def scenario(c: RpcClient):
            await c.get_balance("A")
            await c.get_balance("B")

        _, node = with_node({"getBalance": {"result": {"value": 1}}}, scenario)
        assert [r["id"] for r in node.requests] == [1, 2]

    def test_jsonrpc_error(self) -> None:
        with pytest.raises(RpcError) as exc:
            with_node({"getBalance": {"error": {"code": -32602, "message": "Invalid param"}}}, lambda c: c.get_balance("A"))
        assert exc.value.code == -32602
        assert "Invalid param" in str(exc.value)

    def test_http_error(self) -> None:
        with pytest.raises(RpcError) as exc:
            with_node({"getBalance": 503}, lambda c: c.get_balance("A"))
        assert exc.value.code == 503

    def test_invalid_json(self) -> None:
        with pytest.raises(RpcError):
            with_node({"getBalance": "<html>"}, lambda c: c.get_balance("A"))

    def test_invalid_utf8_body(self) -> None:
        with pytest.raises(RpcError) as exc:
            with_node({"getBalance": b'{"result":"\xff\xfe"}'}, lambda c: c.get_balance("A"))
        assert "invalid JSON" in str(exc.value)

    @pytest.mark.parametrize("error", ["rate limited", 429, ["x"]])
    def test_error_that_is_not_an_object(self, error) -> None:
        with pytest.raises(RpcError) as exc:
            with_node({"getBalance": {"error": error}}, lambda c: c.get_balance("A"))
        assert exc.value.code is None
        assert str(exc.value).startswith("getBalance: ")

    def test_body_that_is_not_an_object(self) -> None:
        with pytest.raises(RpcError):
            with_node({"getBalance": "[1, 2]"}, lambda c: c.get_balance("A"))

    def test_malformed_result(self) -> None:
        with pytest.raises(RpcError):
            with_node({"getBalance": {"result": None}}, lambda c: c.get_balance("A"))

    def test_unreachable_node(self) -> None:
        async def main():
            client = RpcClient("http://127.0.0.1:9/", timeout=2)
            try:
                await client.get_balance("A")
            finally:
                await client.close()

        with pytest.raises(RpcError):
            asyncio.run(main())

    def test_unknown_commitment(self) -> None:
        with pytest.raises(ValueError):
            RpcClient(commitment="rooted")


class TestMethods:
    def test_latest_blockhash_uses_configured_commitment(self) -> None:
        result, node = with_node(
            {"getLatestBlockhash": {"result": {"value": {"blockhash": BLOCKHASH, "lastValidBlockHeight": 9}}}},
            lambda c: c.get_latest_blockhash(),
            commitment="confirmed",
        )
        assert result == BLOCKHASH
        assert node.requests[0]["params"] == [{"commitment": "confirmed"}]

    def test_send_transaction(self) -> None:
        kp = Keypair()
        tx = build_transfer(kp, Keypair().pubkey(), 1, Hash.from_string(BLOCKHASH))
        signature = str(tx.signatures[0])
        result, node = with_node({"sendTransaction": {"result": signature}}, lambda c: c.send_transaction(tx, SendConfig()))
        assert result == signature
        encoded, config = node.requests[0]["params"]
        assert base64.b64decode(encoded) == bytes(tx)
        assert config == {"skipPreflight": True, "preflightCommitment": "confirmed", "encoding": "base64", "maxRetries": 3}

    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            (None, False),
            ({"slot": 5, "confirmations": 3, "err": None, "confirmationStatus": "confirmed"}, False),
            ({"slot": 5, "confirmations": None, "err": None, "confirmationStatus": "finalized"}, True),
        ],
    )
    def test_confirm_transaction(self, status, expected: bool) -> None:
        sig = str(Signature.default())
        result, node = with_node(
            {"getSignatureStatuses": {"result": {"context": {"slot": 5}, "value": [status]}}},
            lambda c: c.confirm_transaction(sig, "finalized"),
        )
        assert result is expected
        assert node.requests[0]["params"] == [[sig]]

    @pytest.mark.parametrize("status", ["finalized", 7, ["finalized"]])
    def test_confirm_transaction_status_not_an_object(self, status) -> None:
        with pytest.raises(RpcError) as exc:
            with_node(
                {"getSignatureStatuses": {"result": {"value": [status]}}},
                lambda c: c.confirm_transaction("sig", "finalized"),
            )
        assert "malformed status" in str(exc.value)

    def test_confirm_transaction_failed_on_chain(self) -> None:
        status = {"slot": 5, "confirmations": None, "err": {"InstructionError": [0, "Custom"]}, "confirmationStatus": "finalized"}
        with pytest.raises(RpcError):
            with_node(
                {"getSignatureStatuses": {"result": {"value": [status]}}},
                lambda c: c.confirm_transaction("sig", "finalized"),
            )


class TestSatisfiesCommitment:
    def test_levels(self) -> None:
        assert satisfies_commitment({"confirmationStatus": "finalized"}, "confirmed")
        assert satisfies_commitment({"confirmationStatus": "confirmed"}, "processed")
        assert not satisfies_commitment({"confirmationStatus": "processed"}, "finalized")

    def test_legacy_status(self) -> None:
        assert satisfies_commitment({"confirmations": None}, "finalized")
        assert not satisfies_commitment({"confirmations": 10}, "finalized")

    def test_unknown_level(self) -> None:
        assert not satisfies_commitment({"confirmationStatus": "weird"}, "processed")
