from __future__ import annotations

import asyncio
import inspect
import logging
import math
import random
import time
import uuid
from typing import Any, Awaitable, Callable, Protocol

from .config import app_config
from .errors import MalformedQuoteError, SignerUnavailableError
from .models import ExecutionResult, Quote
from .tokens import decimals_for, get_token_by_address

logger = logging.getLogger(__name__)

CANCELLED_ERROR = "Transaction cancelled by user"
SIMULATED_FAILURE_ERROR = "Simulated transaction failure"

Sleep = Callable[[float], Awaitable[Any]]


class MessageSigner(Protocol):
    def sign_message(self, message: bytes) -> Any: ...


class PreApprovedSigner:
    """Signer whose answer is decided up front, e.g. from an API request flag."""

    def __init__(self, approved: bool = True) -> None:
        self.approved = approved
        self.messages: list[bytes] = []

    def sign_message(self, message: bytes) -> bool:
        self.messages.append(message)
        return self.approved


def confirmation_message(quote: Quote) -> bytes:
    in_token = get_token_by_address(quote.input_mint)
    out_token = get_token_by_address(quote.output_mint)
    in_amount = quote.in_amount / 10 ** decimals_for(quote.input_mint)
    out_amount = quote.out_amount / 10 ** decimals_for(quote.output_mint)
    text = (
        "Confirm Swap\n\n"
        f"{in_amount} {in_token.symbol if in_token else 'tokens'} -> "
        f"~{out_amount:.4f} {out_token.symbol if out_token else 'tokens'}\n\n"
        f"Slippage: {quote.slippage_bps / 100}%\n\n"
        "This is a simulated transaction."
    )
    return text.encode("utf-8")


class MockExecutionSimulator:
    def __init__(
        self,
        rng: random.Random | None = None,
        *,
        sleep: Sleep | None = None,
        failure_rate: float | None = None,
        min_delay_seconds: float | None = None,
        max_delay_seconds: float | None = None,
        execution_variance: float | None = None,
        auto_approve_without_signer: bool | None = None,
    ) -> None:
        settings = app_config.simulator_settings()
        self._rng = rng or random.Random()
        self._sleep = sleep or asyncio.sleep
        self.failure_rate = float(settings["failure_rate"] if failure_rate is None else failure_rate)
        self.min_delay_seconds = float(
            settings["min_delay_seconds"] if min_delay_seconds is None else min_delay_seconds
        )
        self.max_delay_seconds = float(
            settings["max_delay_seconds"] if max_delay_seconds is None else max_delay_seconds
        )
        self.execution_variance = float(
            settings["execution_variance"] if execution_variance is None else execution_variance
        )
        self.auto_approve_without_signer = bool(
            settings["auto_approve_without_signer"]
            if auto_approve_without_signer is None
            else auto_approve_without_signer
        )
        if not 0.0 <= self.failure_rate <= 1.0:
            raise ValueError("failure_rate must be between 0 and 1")
        if self.min_delay_seconds > self.max_delay_seconds:
            raise ValueError("min_delay_seconds cannot exceed max_delay_seconds")

    async def execute(self, quote: Quote, signer: MessageSigner | None) -> ExecutionResult:
        if not isinstance(quote, Quote) or quote.out_amount < 0 or quote.in_amount <= 0:
            raise MalformedQuoteError(f"Cannot execute malformed quote: {quote!r}")

        if not await self._confirm(quote, signer):
            logger.info("Simulated swap cancelled by signer")
            return ExecutionResult(success=False, input_amount=quote.in_amount, error=CANCELLED_ERROR)

        signature = self._new_signature()
        delay = self._rng.uniform(self.min_delay_seconds, self.max_delay_seconds)
        logger.info("Simulating confirmation of %s (%.2fs)", signature, delay)
        await self._sleep(delay)

        if self._rng.random() < self.failure_rate:
            logger.warning("Simulated transaction failure for %s", signature)
            return ExecutionResult(
                success=False,
                signature=signature,
                input_amount=quote.in_amount,
                error=SIMULATED_FAILURE_ERROR,
            )

        variance = self._rng.uniform(-self.execution_variance, self.execution_variance)
        quoted = quote.out_amount
        actual = max(math.floor(quoted * (1 + variance)), 0)
        slippage_pct = (quoted - actual) / quoted * 100 if quoted else 0.0

        logger.info("Simulated swap %s completed: out=%d slippage=%.3f%%", signature, actual, slippage_pct)
        return ExecutionResult(
            success=True,
            signature=signature,
            input_amount=quote.in_amount,
            output_amount=actual,
            actual_slippage_pct=slippage_pct,
        )

    async def _confirm(self, quote: Quote, signer: MessageSigner | None) -> bool:
        sign_message = getattr(signer, "sign_message", None) if signer is not None else None
        if sign_message is None:
            if not self.auto_approve_without_signer:
                raise SignerUnavailableError("No signer available to confirm the swap")
            logger.warning("No signer available, auto-approving simulation")
            return True

        try:
            answer = sign_message(confirmation_message(quote))
            if inspect.isawaitable(answer):
                answer = await answer
        except Exception as exc:
            logger.info("Signer rejected swap: %s", exc)
            return False
        return bool(answer)

    @staticmethod
    def _new_signature() -> str:
        return f"{int(time.time() * 1000)}{uuid.uuid4().hex[:13]}"
