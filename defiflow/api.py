from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from .actions import NODE_TEMPLATES, default_registry
from .config import app_config
from .engine import WorkflowEngine
from .errors import (
    ExecutionError,
    GraphError,
    PricingError,
    TraversalError,
    UpstreamError,
    WorkflowValidationError,
)
from .graph import WorkflowGraph
from .jupiter import JupiterClient
from .models import (
    ExecutionRecord,
    JupiterSwapRequest,
    Quote,
    QuoteRequest,
    RunRequest,
    Step,
    ValidationResult,
    WalletValidationRequest,
    Workflow,
    WorkflowPatch,
)
from .preview import build_preview
from .simulator import PreApprovedSigner
from .store import SQLiteStore
from .tokens import DEVNET_TOKENS
from .validator import validate

logging.basicConfig(level=app_config.log_level())
logger = logging.getLogger(__name__)

app = FastAPI(title="DefiFlow", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://127.0.0.1:5173", "http://localhost:5173"],
    allow_origin_regex=r"^https?://(127\.0\.0\.1|localhost):\d+$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

registry = default_registry()
engine = WorkflowEngine(registry)
store = SQLiteStore(app_config.db_path())
jupiter = JupiterClient()


def _require_workflow(workflow_id: str) -> Workflow:
    workflow = store.get_workflow(workflow_id)
    if workflow is None:
        raise HTTPException(status_code=404, detail="Workflow not found")
    return workflow


def _load_graph(workflow: Workflow) -> WorkflowGraph:
    try:
        return WorkflowGraph.from_workflow(workflow)
    except GraphError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


def _upstream_failure(exc: UpstreamError) -> HTTPException:
    detail: dict[str, Any] = {"error": str(exc)}
    if exc.status is not None:
        detail["status"] = exc.status
    if exc.detail:
        detail["details"] = exc.detail
    return HTTPException(status_code=502, detail=detail)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/action-catalog")
def action_catalog() -> list[dict[str, Any]]:
    return registry.list_specs()


@app.get("/node-templates")
def node_templates() -> list[dict[str, Any]]:
    return [template.as_dict() for template in NODE_TEMPLATES]


@app.get("/tokens")
def tokens() -> list[dict[str, Any]]:
    return [token.as_dict() for token in DEVNET_TOKENS]


@app.post("/workflows", response_model=Workflow)
def create_workflow(workflow: Workflow) -> Workflow:
    if store.get_workflow(workflow.id):
        raise HTTPException(status_code=409, detail="Workflow id already exists")
    _load_graph(workflow)
    return store.create_workflow(workflow)


@app.get("/workflows", response_model=list[Workflow])
def list_workflows() -> list[Workflow]:
    return store.list_workflows()


@app.get("/workflows/{workflow_id}", response_model=Workflow)
def get_workflow(workflow_id: str) -> Workflow:
    return _require_workflow(workflow_id)


@app.put("/workflows/{workflow_id}", response_model=Workflow)
def replace_workflow(workflow_id: str, workflow: Workflow) -> Workflow:
    if workflow.id != workflow_id:
        raise HTTPException(status_code=400, detail="Workflow id mismatch")
    _load_graph(workflow)
    patch = WorkflowPatch(
        name=workflow.name,
        description=workflow.description,
        nodes=workflow.nodes,
        edges=workflow.edges,
    )
    updated = store.update_workflow(workflow_id, patch)
    if updated is None:
        raise HTTPException(status_code=404, detail="Workflow not found")
    return updated


@app.patch("/workflows/{workflow_id}", response_model=Workflow)
def patch_workflow(workflow_id: str, patch: WorkflowPatch) -> Workflow:
    existing = _require_workflow(workflow_id)
    candidate = existing.model_copy(
        update={
            "nodes": patch.nodes if patch.nodes is not None else existing.nodes,
            "edges": patch.edges if patch.edges is not None else existing.edges,
        }
    )
    _load_graph(candidate)
    updated = store.update_workflow(workflow_id, patch)
    if updated is None:
        raise HTTPException(status_code=404, detail="Workflow not found")
    return updated


@app.delete("/workflows/{workflow_id}")
def delete_workflow(workflow_id: str) -> dict[str, str]:
    if not store.delete_workflow(workflow_id):
        raise HTTPException(status_code=404, detail="Workflow not found")
    return {"status": "deleted", "id": workflow_id}


@app.post("/workflows/{workflow_id}/validate", response_model=ValidationResult)
def validate_workflow(workflow_id: str) -> ValidationResult:
    graph = _load_graph(_require_workflow(workflow_id))
    return validate(graph, registry)


@app.post("/workflows/{workflow_id}/preview", response_model=list[Step])
def preview_workflow(workflow_id: str) -> list[Step]:
    graph = _load_graph(_require_workflow(workflow_id))
    try:
        return build_preview(graph, registry)
    except TraversalError as exc:
        raise HTTPException(status_code=422, detail=f"Cannot preview workflow: {exc}") from exc


@app.post("/workflows/{workflow_id}/execute", response_model=ExecutionRecord)
async def execute_workflow(workflow_id: str, request: RunRequest) -> ExecutionRecord:
    workflow = _require_workflow(workflow_id)
    _load_graph(workflow)
    execution = store.create_execution(workflow_id)
    signer = PreApprovedSigner(request.approve)

    try:
        result = await engine.run(workflow, signer, request.user_public_key)
    except WorkflowValidationError as exc:
        store.finish_execution(execution.id, status="failed", error=str(exc))
        raise HTTPException(
            status_code=422,
            detail={"error": str(exc), "issues": [issue.model_dump() for issue in exc.issues]},
        ) from exc
    except (PricingError, ExecutionError) as exc:
        store.finish_execution(execution.id, status="failed", error=str(exc))
        raise HTTPException(status_code=400, detail=f"Execution failed: {exc}") from exc
    except Exception as exc:
        logger.exception("Execution %s of workflow %s crashed", execution.id, workflow_id)
        store.finish_execution(execution.id, status="failed", error=str(exc))
        raise HTTPException(status_code=500, detail=f"Execution failed: {exc}") from exc

    store.finish_execution(
        execution.id,
        status="completed" if result.success else "failed",
        result=result.model_dump(),
        error=result.error,
    )
    updated = store.get_execution(execution.id)
    if updated is None:
        raise HTTPException(status_code=500, detail="Execution record missing")
    return updated


@app.get("/workflows/{workflow_id}/executions", response_model=list[ExecutionRecord])
def list_executions(workflow_id: str) -> list[ExecutionRecord]:
    _require_workflow(workflow_id)
    return store.list_executions(workflow_id)


@app.get("/executions/{execution_id}", response_model=ExecutionRecord)
def get_execution(execution_id: str) -> ExecutionRecord:
    execution = store.get_execution(execution_id)
    if execution is None:
        raise HTTPException(status_code=404, detail="Execution not found")
    return execution


@app.post("/quote", response_model=Quote)
def mock_quote(request: QuoteRequest) -> Quote:
    try:
        return engine.pricing.quote(request.input_mint, request.output_mint, request.amount, request.slippage_bps)
    except PricingError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.get("/jupiter/quote")
def jupiter_quote(
    input_mint: str = Query(alias="inputMint"),
    output_mint: str = Query(alias="outputMint"),
    amount: int = Query(gt=0),
    slippage_bps: int = Query(default=50, alias="slippageBps", ge=0, le=10_000),
    swap_mode: str = Query(default="ExactIn", alias="swapMode"),
    only_direct_routes: bool = Query(default=False, alias="onlyDirectRoutes"),
) -> dict[str, Any]:
    try:
        return jupiter.get_quote(input_mint, output_mint, amount, slippage_bps, swap_mode, only_direct_routes)
    except UpstreamError as exc:
        raise _upstream_failure(exc) from exc


@app.post("/jupiter/swap")
def jupiter_swap(request: JupiterSwapRequest) -> dict[str, Any]:
    try:
        return jupiter.build_swap(request.quote_response, request.user_public_key, request.wrap_and_unwrap_sol)
    except UpstreamError as exc:
        raise _upstream_failure(exc) from exc


@app.get("/jupiter/tokens")
def jupiter_tokens(cluster: str | None = None) -> list[Any]:
    try:
        return jupiter.list_tokens(cluster)
    except UpstreamError as exc:
        raise _upstream_failure(exc) from exc


@app.post("/wallet/validate")
def validate_wallet(request: WalletValidationRequest) -> dict[str, bool]:
    address = request.address
    if not isinstance(address, str) or not address:
        raise HTTPException(status_code=400, detail="Invalid address")
    return {"isValid": address.startswith("0x") and len(address) == 42}
