from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from .actions import ActionRegistry, is_empty_value
from .errors import (
    InvalidAmountError,
    NoExecutableActionError,
    TraversalError,
    WorkflowValidationError,
)
from .graph import WorkflowGraph
from .models import ExecutionResult, Node, Workflow
from .preview import build_preview
from .pricing import MockPricingEngine
from .simulator import MessageSigner, MockExecutionSimulator
from .tokens import decimals_for, resolve_mint, to_base_units
from .validator import validate

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SwapRequest:
    node_id: str
    input_mint: str
    output_mint: str
    amount: int
    slippage_bps: int | None


class WorkflowEngine:
    def __init__(
        self,
        registry: ActionRegistry,
        pricing: MockPricingEngine | None = None,
        simulator: MockExecutionSimulator | None = None,
    ) -> None:
        self.registry = registry
        self.pricing = pricing or MockPricingEngine()
        self.simulator = simulator or MockExecutionSimulator()

    def inspect(self, workflow: Workflow) -> dict[str, Any]:
        graph = WorkflowGraph.from_workflow(workflow)
        result = validate(graph, self.registry)
        try:
            steps = [step.model_dump() for step in build_preview(graph, self.registry)]
        except TraversalError:
            steps = []
        return {"validation": result.model_dump(), "steps": steps}

    def swap_request(self, graph: WorkflowGraph) -> SwapRequest:
        """Trade parameters of the first swap-type step in execution order."""
        for step in build_preview(graph, self.registry):
            spec = self.registry.find(step.type)
            if spec is None or spec.swap_fields is None:
                continue
            node = graph.get_node(step.node_id)
            if node is not None:
                return self._swap_from_node(node)
        raise NoExecutableActionError("No executable swap action found in the workflow")

    async def run(
        self,
        workflow: Workflow,
        signer: MessageSigner | None,
        user_public_key: str | None = None,
    ) -> ExecutionResult:
        graph = WorkflowGraph.from_workflow(workflow)
        result = validate(graph, self.registry)
        if not result.valid:
            raise WorkflowValidationError(result.errors)

        request = self.swap_request(graph)
        logger.info(
            "Executing swap node %s of workflow %s for %s: %s -> %s amount=%d",
            request.node_id,
            workflow.id,
            user_public_key or "anonymous",
            request.input_mint,
            request.output_mint,
            request.amount,
        )
        quote = self.pricing.quote(request.input_mint, request.output_mint, request.amount, request.slippage_bps)
        return await self.simulator.execute(quote, signer)

    def _swap_from_node(self, node: Node) -> SwapRequest:
        spec = self.registry.get(node.action_type or "")
        fields = spec.swap_fields
        if fields is None:
            raise NoExecutableActionError(f"Action {spec.type_name} is not a swap")

        config = node.config
        input_mint = resolve_mint(str(config.get(fields.input_key, "")))
        output_mint = resolve_mint(str(config.get(fields.output_key, "")))
        amount = to_base_units(config.get(fields.amount_key), decimals_for(input_mint))

        raw_slippage = config.get(fields.slippage_key)
        slippage_bps: int | None = None
        if not is_empty_value(raw_slippage):
            try:
                value = Decimal(str(raw_slippage).strip())
            except InvalidOperation as exc:
                raise InvalidAmountError(f"Slippage is not a number: {raw_slippage!r}") from exc
            if not value.is_finite():
                raise InvalidAmountError(f"Slippage is not a number: {raw_slippage!r}")
            slippage_bps = int(value * 100) if fields.slippage_unit == "pct" else int(value)

        return SwapRequest(node.id, input_mint, output_mint, amount, slippage_bps)


def validate_swap_params(input_mint: str, output_mint: str, amount: float) -> tuple[bool, str | None]:
    if input_mint == output_mint:
        return False, "Input and output tokens must be different"
    if amount <= 0:
        return False, "Amount must be greater than 0"
    return True, None
