import asyncio
import io
import json
from urllib.error import HTTPError, URLError
from urllib.parse import parse_qs, urlparse

import pytest

from defiflow import jupiter
from defiflow.errors import IdenticalMintError, InvalidAmountError, PricingError, UpstreamError
from defiflow.jupiter import JupiterClient, execute_real_swap
from defiflow.simulator import CANCELLED_ERROR
from defiflow.tokens import DEVNET_MINTS

SOL = DEVNET_MINTS["WSOL"]
USDC = DEVNET_MINTS["USDC"]


class FakeResponse:
    def __init__(self, payload):
        self._raw = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")

    def read(self):
        return self._raw

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture
def client():
    return JupiterClient(base_url="https://jupiter.test/v6/", timeout=1, cluster="devnet")


@pytest.fixture
def captured(monkeypatch):
    calls = []

    def install(payload=None, error=None):
        def fake_urlopen(request, timeout):
            calls.append((request, timeout))
            if error is not None:
                raise error
            return FakeResponse(payload)

        monkeypatch.setattr(jupiter, "urlopen", fake_urlopen)
        return calls

    return install


class TestClient:
    def test_quote_request(self, client, captured):
        calls = captured({"outAmount": "123"})

        assert client.get_quote(SOL, USDC, 1000, 75) == {"outAmount": "123"}

        request, timeout = calls[0]
        url = urlparse(request.full_url)
        params = parse_qs(url.query)
        assert request.get_method() == "GET"
        assert url.path == "/v6/quote"
        assert params["inputMint"] == [SOL]
        assert params["slippageBps"] == ["75"]
        assert params["onlyDirectRoutes"] == ["false"]
        assert timeout == 1.0

    def test_swap_request_body(self, client, captured):
        calls = captured({"swapTransaction": "AQID"})

        client.build_swap({"outAmount": "1"}, "Wallet1111")

        request, _ = calls[0]
        body = json.loads(request.data)
        assert request.get_method() == "POST"
        assert body["userPublicKey"] == "Wallet1111"
        assert body["quoteResponse"] == {"outAmount": "1"}
        assert parse_qs(urlparse(request.full_url).query)["cluster"] == ["devnet"]

    def test_token_list(self, client, captured):
        captured([{"address": SOL}])
        assert client.list_tokens() == [{"address": SOL}]

    def test_token_list_must_be_a_list(self, client, captured):
        captured({"tokens": []})
        with pytest.raises(UpstreamError):
            client.list_tokens()

    def test_http_error(self, client, captured):
        error = HTTPError("https://jupiter.test/v6/quote", 429, "Too Many Requests", {}, io.BytesIO(b"slow down"))
        captured(error=error)
        with pytest.raises(UpstreamError) as excinfo:
            client.get_quote(SOL, USDC, 1000)
        assert excinfo.value.status == 429
        assert excinfo.value.detail == "slow down"

    def test_unreachable(self, client, captured):
        captured(error=URLError("connection refused"))
        with pytest.raises(UpstreamError) as excinfo:
            client.get_quote(SOL, USDC, 1000)
        assert excinfo.value.status is None

    def test_invalid_json(self, client, captured):
        captured(b"<html>")
        with pytest.raises(UpstreamError):
            client.get_quote(SOL, USDC, 1000)


class StubClient:
    cluster = "devnet"

    def __init__(self, swap=None):
        self.swap = {"swapTransaction": "AQID"} if swap is None else swap
        self.calls = []

    def get_quote(self, input_mint, output_mint, amount, slippage_bps):
        self.calls.append(("quote", input_mint, output_mint, amount, slippage_bps))
        return {"outAmount": "149000000", "priceImpactPct": "0.12"}

    def build_swap(self, quote, user_public_key):
        self.calls.append(("swap", user_public_key))
        return self.swap


class Signer:
    def __init__(self, receipt=None, error=None):
        self.receipt = receipt
        self.error = error
        self.payloads = []

    def sign_and_submit(self, payload):
        self.payloads.append(payload)
        if self.error is not None:
            raise self.error
        return self.receipt


def swap(client, signer, **overrides):
    params = {
        "input_mint": SOL,
        "output_mint": USDC,
        "amount": 1_000_000,
        "user_public_key": "Wallet1111",
    }
    params.update(overrides)
    return asyncio.run(execute_real_swap(client, signer, **params))


class TestRealSwap:
    def test_signed_swap(self):
        client = StubClient()
        signer = Signer({"signature": "5xYz"})

        result = swap(client, signer)

        assert result.success
        assert result.signature == "5xYz"
        assert result.output_amount == 149_000_000
        assert result.actual_slippage_pct == pytest.approx(0.12)
        assert signer.payloads == ["AQID"]
        assert client.calls[0] == ("quote", SOL, USDC, 1_000_000, 50)

    def test_async_signer(self):
        class AsyncSigner:
            async def sign_and_submit(self, payload):
                return {"signature": "abc"}

        assert swap(StubClient(), AsyncSigner()).signature == "abc"

    def test_rejected_by_wallet(self):
        result = swap(StubClient(), Signer(error=RuntimeError("User rejected")))
        assert not result.success
        assert result.error == CANCELLED_ERROR

    def test_no_signature_returned(self):
        result = swap(StubClient(), Signer({}))
        assert result.error == CANCELLED_ERROR

    def test_missing_transaction(self):
        with pytest.raises(UpstreamError):
            swap(StubClient(swap={"error": "route not found"}), Signer({"signature": "x"}))

    def test_rejects_mainnet_mint_on_devnet(self):
        client = StubClient()
        with pytest.raises(PricingError):
            swap(client, Signer(), output_mint="EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v")
        assert client.calls == []

    def test_parameter_checks(self):
        with pytest.raises(InvalidAmountError):
            swap(StubClient(), Signer(), amount=0)
        with pytest.raises(IdenticalMintError):
            swap(StubClient(), Signer(), output_mint=SOL)
