import asyncio
import math
import random

import pytest

from defiflow.errors import MalformedQuoteError, SignerUnavailableError
from defiflow.models import Quote
from defiflow.simulator import (
    CANCELLED_ERROR,
    SIMULATED_FAILURE_ERROR,
    MockExecutionSimulator,
    PreApprovedSigner,
    confirmation_message,
)
from defiflow.tokens import DEVNET_MINTS


async def no_sleep(_delay):
    return None


def make_quote(out_amount=149_550_000_000):
    return Quote(
        input_mint=DEVNET_MINTS["WSOL"],
        output_mint=DEVNET_MINTS["USDC"],
        in_amount=1_000_000_000,
        out_amount=out_amount,
        price_impact_pct=0.0,
        fee_amount=450_000_000,
        minimum_out_amount=148_802_250_000,
        slippage_bps=50,
    )


def make_simulator(seed=1, **overrides):
    options = {
        "sleep": no_sleep,
        "failure_rate": 0.05,
        "min_delay_seconds": 2.0,
        "max_delay_seconds": 4.0,
        "execution_variance": 0.005,
        "auto_approve_without_signer": True,
    }
    options.update(overrides)
    return MockExecutionSimulator(random.Random(seed), **options)


def test_failure_rate_over_many_runs():
    simulator = make_simulator(seed=2024)
    signer = PreApprovedSigner(True)
    quote = make_quote()

    async def run_all():
        return [await simulator.execute(quote, signer) for _ in range(10_000)]

    results = asyncio.run(run_all())
    failures = [r for r in results if not r.success]

    assert 0.04 <= len(failures) / len(results) <= 0.06
    assert all(r.error == SIMULATED_FAILURE_ERROR for r in failures)


def test_successful_execution_within_variance():
    quote = make_quote()
    result = asyncio.run(make_simulator(failure_rate=0.0).execute(quote, PreApprovedSigner(True)))

    assert result.success
    assert result.error is None
    assert result.input_amount == quote.in_amount
    assert math.floor(quote.out_amount * 0.995) <= result.output_amount <= math.floor(quote.out_amount * 1.005)
    assert abs(result.actual_slippage_pct) <= 0.5 + 1e-9


def test_zero_variance_matches_quote():
    quote = make_quote()
    result = asyncio.run(
        make_simulator(failure_rate=0.0, execution_variance=0.0).execute(quote, PreApprovedSigner(True))
    )
    assert result.output_amount == quote.out_amount
    assert result.actual_slippage_pct == 0.0


def test_zero_quoted_output_reports_no_slippage():
    result = asyncio.run(
        make_simulator(failure_rate=0.0).execute(make_quote(out_amount=0), PreApprovedSigner(True))
    )
    assert result.output_amount == 0
    assert result.actual_slippage_pct == 0.0


def test_forced_failure_keeps_signature():
    result = asyncio.run(make_simulator(failure_rate=1.0).execute(make_quote(), PreApprovedSigner(True)))
    assert not result.success
    assert result.error == SIMULATED_FAILURE_ERROR
    assert result.signature


def test_delay_is_awaited_through_injected_sleep():
    delays = []

    async def record(delay):
        delays.append(delay)

    simulator = make_simulator(sleep=record, failure_rate=0.0)
    asyncio.run(simulator.execute(make_quote(), PreApprovedSigner(True)))
    assert len(delays) == 1
    assert 2.0 <= delays[0] <= 4.0


def test_signatures_are_unique():
    simulator = make_simulator(failure_rate=0.0)

    async def run_all():
        return [await simulator.execute(make_quote(), PreApprovedSigner(True)) for _ in range(50)]

    signatures = [r.signature for r in asyncio.run(run_all())]
    assert len(set(signatures)) == 50


class TestSigner:
    def test_rejection_cancels(self):
        signer = PreApprovedSigner(False)
        result = asyncio.run(make_simulator().execute(make_quote(), signer))
        assert not result.success
        assert result.error == CANCELLED_ERROR
        assert result.signature is None
        assert len(signer.messages) == 1

    @pytest.mark.parametrize("answer", [None, 0, "", b""])
    def test_falsy_answer_cancels(self, answer):
        class Silent:
            def sign_message(self, message):
                return answer

        result = asyncio.run(make_simulator(failure_rate=0.0).execute(make_quote(), Silent()))
        assert not result.success
        assert result.error == CANCELLED_ERROR

    def test_raising_signer_cancels(self):
        class Refusing:
            def sign_message(self, message):
                raise RuntimeError("User rejected the request")

        result = asyncio.run(make_simulator().execute(make_quote(), Refusing()))
        assert result.error == CANCELLED_ERROR

    def test_async_signer(self):
        class Wallet:
            async def sign_message(self, message):
                return b"signed"

        result = asyncio.run(make_simulator(failure_rate=0.0).execute(make_quote(), Wallet()))
        assert result.success

    def test_missing_signer_auto_approves(self):
        result = asyncio.run(make_simulator(failure_rate=0.0).execute(make_quote(), None))
        assert result.success

    def test_missing_signer_without_auto_approve(self):
        simulator = make_simulator(auto_approve_without_signer=False)
        with pytest.raises(SignerUnavailableError):
            asyncio.run(simulator.execute(make_quote(), None))

    def test_confirmation_message_names_tokens(self):
        text = confirmation_message(make_quote()).decode("utf-8")
        assert "1.0 SOL" in text
        assert "USDC" in text
        assert "Slippage: 0.5%" in text


class TestConstruction:
    def test_malformed_quote(self):
        with pytest.raises(MalformedQuoteError):
            asyncio.run(make_simulator().execute({"out_amount": 1}, PreApprovedSigner(True)))

    def test_negative_quoted_output(self):
        with pytest.raises(MalformedQuoteError):
            asyncio.run(make_simulator().execute(make_quote(out_amount=-1), PreApprovedSigner(True)))

    def test_failure_rate_bounds(self):
        with pytest.raises(ValueError):
            make_simulator(failure_rate=1.5)

    def test_delay_bounds(self):
        with pytest.raises(ValueError):
            make_simulator(min_delay_seconds=5.0, max_delay_seconds=1.0)
