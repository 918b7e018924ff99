from __future__ import annotations

from typing import Any


class DefiFlowError(Exception):
    """Base class for every error raised by the workflow core."""


class GraphError(DefiFlowError):
    pass


class InvalidEdgeError(GraphError):
    pass


class DuplicateNodeError(GraphError):
    pass


class NodeNotFoundError(GraphError):
    pass


class TraversalError(DefiFlowError):
    pass


class PricingError(DefiFlowError):
    pass


class InvalidAmountError(PricingError):
    pass


class IdenticalMintError(PricingError):
    pass


class ExecutionError(DefiFlowError):
    pass


class MalformedQuoteError(ExecutionError):
    pass


class SignerUnavailableError(ExecutionError):
    pass


class NoExecutableActionError(ExecutionError):
    pass


class WorkflowValidationError(DefiFlowError):
    def __init__(self, issues: list[Any]) -> None:
        self.issues = list(issues)
        super().__init__(f"Workflow is invalid ({len(self.issues)} issue(s))")


class UpstreamError(DefiFlowError):
    def __init__(self, message: str, status: int | None = None, detail: str | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.detail = detail
