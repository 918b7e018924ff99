from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

NodeKind = Literal["action", "condition", "startEnd"]
IssueKind = Literal["connection", "property", "general"]


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def generate_id() -> str:
    return uuid.uuid4().hex[:9]


class Node(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=generate_id)
    kind: NodeKind
    action_type: str | None = Field(default=None, alias="actionType")
    sub_type: Literal["start", "end"] | None = Field(default=None, alias="subType")
    label: str = ""
    config: dict[str, Any] = Field(default_factory=dict)
    condition: str | None = None
    position: dict[str, float] = Field(default_factory=lambda: {"x": 0.0, "y": 0.0})

    @model_validator(mode="after")
    def _check_kind_fields(self) -> "Node":
        if self.kind == "action" and not self.action_type:
            raise ValueError("action nodes require an action_type")
        if self.kind != "action" and self.action_type is not None:
            raise ValueError("action_type is only allowed on action nodes")
        if self.kind == "startEnd" and self.sub_type is None:
            raise ValueError("startEnd nodes require a sub_type of 'start' or 'end'")
        if self.kind != "startEnd" and self.sub_type is not None:
            raise ValueError("sub_type is only allowed on startEnd nodes")
        return self

    @property
    def is_start(self) -> bool:
        return self.kind == "startEnd" and self.sub_type == "start"

    @property
    def is_end(self) -> bool:
        return self.kind == "startEnd" and self.sub_type == "end"


class Edge(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: f"e-{generate_id()}")
    source: str
    target: str
    source_handle: str | None = Field(default=None, alias="sourceHandle")
    target_handle: str | None = Field(default=None, alias="targetHandle")


class Workflow(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    description: str = ""
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    created: str = Field(default_factory=_utc_now)
    updated: str = Field(default_factory=_utc_now)

    def touch(self) -> None:
        self.updated = _utc_now()


class WorkflowPatch(BaseModel):
    name: str | None = None
    description: str | None = None
    nodes: list[Node] | None = None
    edges: list[Edge] | None = None


class ValidationIssue(BaseModel):
    kind: IssueKind
    message: str
    node_id: str | None = None


class ValidationResult(BaseModel):
    valid: bool
    errors: list[ValidationIssue] = Field(default_factory=list)


class Step(BaseModel):
    node_id: str
    type: str
    label: str
    details: str


class Quote(BaseModel):
    input_mint: str
    output_mint: str
    in_amount: int
    out_amount: int
    price_impact_pct: float
    fee_amount: int
    minimum_out_amount: int
    slippage_bps: int
    swap_mode: str = "ExactIn"
    route_label: str = "Mock DEX"


class ExecutionResult(BaseModel):
    success: bool
    signature: str | None = None
    input_amount: int | None = None
    output_amount: int | None = None
    actual_slippage_pct: float | None = None
    error: str | None = None

    @model_validator(mode="after")
    def _error_iff_failed(self) -> "ExecutionResult":
        if self.success and self.error is not None:
            raise ValueError("successful executions cannot carry an error")
        if not self.success and not self.error:
            raise ValueError("failed executions must carry an error")
        return self


class ExecutionRecord(BaseModel):
    id: str
    workflow_id: str
    status: str
    started_at: datetime
    finished_at: datetime | None = None
    result: dict[str, Any] | None = None
    error: str | None = None


class RunRequest(BaseModel):
    user_public_key: str | None = None
    approve: bool = True


class QuoteRequest(BaseModel):
    input_mint: str
    output_mint: str
    amount: int
    slippage_bps: int | None = None


class WalletValidationRequest(BaseModel):
    address: Any = None


class JupiterSwapRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    quote_response: dict[str, Any] = Field(alias="quoteResponse")
    user_public_key: str = Field(alias="userPublicKey")
    wrap_and_unwrap_sol: bool = Field(default=True, alias="wrapAndUnwrapSol")
