from __future__ import annotations

import inspect
import json
import logging
from typing import Any, Protocol
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from .config import app_config
from .errors import IdenticalMintError, InvalidAmountError, PricingError, UpstreamError
from .models import ExecutionResult
from .simulator import CANCELLED_ERROR
from .tokens import is_devnet_safe

logger = logging.getLogger(__name__)


class TransactionSigner(Protocol):
    def sign_and_submit(self, payload: str) -> Any: ...


class JupiterClient:
    """Thin request/response proxy for the Jupiter aggregator API."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        cluster: str | None = None,
    ) -> None:
        settings = app_config.jupiter_settings()
        self.base_url = str(base_url or settings["base_url"]).rstrip("/")
        self.timeout = float(timeout if timeout is not None else settings["timeout_seconds"])
        self.cluster = str(cluster or settings["cluster"])

    def get_quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: int = 50,
        swap_mode: str = "ExactIn",
        only_direct_routes: bool = False,
    ) -> dict[str, Any]:
        params = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(amount),
            "slippageBps": str(slippage_bps),
            "swapMode": swap_mode,
            "onlyDirectRoutes": "true" if only_direct_routes else "false",
        }
        return self._request("GET", "/quote", params=params)

    def build_swap(
        self,
        quote: dict[str, Any],
        user_public_key: str,
        wrap_and_unwrap_sol: bool = True,
    ) -> dict[str, Any]:
        body = {
            "quoteResponse": quote,
            "userPublicKey": user_public_key,
            "wrapAndUnwrapSol": wrap_and_unwrap_sol,
            "dynamicComputeUnitLimit": True,
            "prioritizationFeeLamports": "auto",
        }
        return self._request("POST", "/swap", params={"cluster": self.cluster}, body=body)

    def list_tokens(self, cluster: str | None = None) -> list[Any]:
        data = self._request("GET", "/tokens", params={"cluster": cluster or self.cluster})
        if not isinstance(data, list):
            raise UpstreamError("Unexpected token list payload from Jupiter")
        return data

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        if params:
            url = f"{url}?{urlencode(params)}"
        data = json.dumps(body).encode("utf-8") if body is not None else None
        headers = {"User-Agent": "DefiFlow/0.1", "Accept": "application/json"}
        if data is not None:
            headers["Content-Type"] = "application/json"

        logger.info("Jupiter %s %s", method, url)
        req = Request(url, data=data, headers=headers, method=method)
        try:
            with urlopen(req, timeout=self.timeout) as resp:  # noqa: S310
                raw = resp.read().decode("utf-8", errors="replace")
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace") if exc.fp else ""
            logger.error("Jupiter %s %s failed with %s", method, path, exc.code)
            raise UpstreamError(f"Jupiter API error: {exc.code}", status=exc.code, detail=detail) from exc
        except URLError as exc:
            logger.error("Jupiter %s %s unreachable: %s", method, path, exc.reason)
            raise UpstreamError(f"Jupiter API unreachable: {exc.reason}") from exc

        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise UpstreamError("Jupiter API returned invalid JSON", detail=raw[:500]) from exc


async def execute_real_swap(
    client: JupiterClient,
    signer: TransactionSigner,
    *,
    input_mint: str,
    output_mint: str,
    amount: int,
    user_public_key: str,
    slippage_bps: int = 50,
) -> ExecutionResult:
    """Quote, build and hand one swap transaction to the signer.

    The transaction payload is passed through untouched; the signer owns
    signing and submission.
    """
    if amount <= 0:
        raise InvalidAmountError("Amount must be greater than 0")
    if input_mint == output_mint:
        raise IdenticalMintError("Input and output tokens must be different")
    if client.cluster == "devnet" and not is_devnet_safe(input_mint, output_mint):
        raise PricingError("Refusing to swap a mainnet-only token mint on devnet")

    quote = client.get_quote(input_mint, output_mint, amount, slippage_bps)
    swap = client.build_swap(quote, user_public_key)
    payload = swap.get("swapTransaction")
    if not isinstance(payload, str) or not payload:
        raise UpstreamError("Jupiter swap response is missing swapTransaction")

    try:
        receipt = signer.sign_and_submit(payload)
        if inspect.isawaitable(receipt):
            receipt = await receipt
    except Exception as exc:
        logger.info("Signer rejected swap transaction: %s", exc)
        return ExecutionResult(success=False, input_amount=amount, error=CANCELLED_ERROR)

    signature = receipt.get("signature") if isinstance(receipt, dict) else None
    if not signature:
        return ExecutionResult(success=False, input_amount=amount, error=CANCELLED_ERROR)

    return ExecutionResult(
        success=True,
        signature=str(signature),
        input_amount=amount,
        output_amount=int(quote.get("outAmount", 0)),
        actual_slippage_pct=float(quote.get("priceImpactPct", 0.0)),
    )
