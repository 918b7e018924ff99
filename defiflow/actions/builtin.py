from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from ..models import Node, NodeKind
from ..tokens import DEVNET_MINTS
from .base import ActionRegistry, ActionSpec, ParamSpec, SwapFields


@dataclass(slots=True, frozen=True)
class NodeTemplate:
    kind: NodeKind
    label: str
    description: str
    category: str
    action_type: str | None = None
    sub_type: Literal["start", "end"] | None = None

    @property
    def key(self) -> str:
        return f"{self.kind}-{self.action_type or self.sub_type or ''}"

    def as_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "kind": self.kind,
            "label": self.label,
            "description": self.description,
            "category": self.category,
            "action_type": self.action_type,
            "sub_type": self.sub_type,
        }


BUILTIN_ACTIONS: tuple[ActionSpec, ...] = (
    ActionSpec(
        type_name="httpRequest",
        label="HTTP Request",
        description="Make an API call to an external service",
        category="api",
        parameters=(
            ParamSpec("url", "URL", required=True),
            ParamSpec("method", "Method", "select", required=True, options=("GET", "POST", "PUT", "DELETE"), default="GET"),
            ParamSpec("headers", "Headers", "json"),
            ParamSpec("body", "Body", "textarea"),
        ),
    ),
    ActionSpec(
        type_name="smartContractCall",
        label="Smart Contract",
        description="Call a smart contract function",
        category="blockchain",
        parameters=(
            ParamSpec("contractAddress", "Contract Address", required=True),
            ParamSpec("functionName", "Function Name", required=True),
            ParamSpec("network", "Network", "select", options=("solana", "ethereum", "polygon"), default="solana"),
            ParamSpec("args", "Arguments", "json"),
        ),
    ),
    ActionSpec(
        type_name="defiSwap",
        label="Token Swap",
        description="Swap one token for another",
        category="defi",
        parameters=(
            ParamSpec("inputToken", "Input Token", required=True, default="SOL"),
            ParamSpec("outputToken", "Output Token", required=True, default="USDC"),
            ParamSpec("amount", "Amount", required=True),
            ParamSpec("slippageBps", "Slippage (bps)", default="50"),
        ),
        swap_fields=SwapFields("inputToken", "outputToken", "amount", "slippageBps"),
    ),
    ActionSpec(
        type_name="tokenTransfer",
        label="Token Transfer",
        description="Transfer tokens to a wallet",
        category="payments",
        parameters=(
            ParamSpec("token", "Token", required=True, default="SOL"),
            ParamSpec("recipient", "Recipient", required=True),
            ParamSpec("amount", "Amount", required=True),
            ParamSpec("memo", "Memo"),
        ),
    ),
    ActionSpec(
        type_name="emailSend",
        label="Email Notification",
        description="Send an email notification",
        category="notifications",
        parameters=(
            ParamSpec("to", "Recipient", required=True),
            ParamSpec("subject", "Subject", required=True),
            ParamSpec("body", "Body", "textarea"),
        ),
    ),
    ActionSpec(
        type_name="swap",
        label="Swap",
        description="Exchange tokens",
        category="core",
        parameters=(
            ParamSpec("sourceToken", "Source Token", required=True, default="SOL"),
            ParamSpec("targetToken", "Target Token", required=True, default="USDC"),
            ParamSpec("amount", "Amount", required=True, default="0.5"),
            ParamSpec("slippage", "Slippage (%)", default="1"),
            ParamSpec("useBestRoute", "Use Best Route", "switch", default=True),
        ),
        swap_fields=SwapFields("sourceToken", "targetToken", "amount", "slippage", slippage_unit="pct"),
    ),
    ActionSpec(
        type_name="jupiterSwap",
        label="Jupiter Swap",
        description="Swap Solana tokens via Jupiter on Devnet",
        category="solana",
        parameters=(
            ParamSpec("inputMint", "Input Mint", required=True, default=DEVNET_MINTS["WSOL"]),
            ParamSpec("outputMint", "Output Mint", required=True, default=DEVNET_MINTS["USDC"]),
            ParamSpec("amount", "Amount", required=True),
            ParamSpec("slippageBps", "Slippage (bps)", default="50"),
        ),
        swap_fields=SwapFields("inputMint", "outputMint", "amount", "slippageBps"),
    ),
    ActionSpec(
        type_name="stake",
        label="Stake",
        description="Stake your tokens",
        category="core",
        parameters=(
            ParamSpec("asset", "Asset", required=True, default="sBTC"),
            ParamSpec("pool", "Pool", required=True, default="Yield Farm"),
            ParamSpec("lockPeriod", "Lock Period (days)", "select", options=("0", "30", "90", "180"), default="30"),
            ParamSpec("autoCompound", "Auto Compound", "switch", default=True),
        ),
    ),
    ActionSpec(
        type_name="claim",
        label="Claim Rewards",
        description="Harvest your rewards",
        category="core",
        parameters=(
            ParamSpec("fromPool", "From Pool", required=True, default="Yield Farm"),
            ParamSpec("token", "Token", required=True, default="YIELD"),
            ParamSpec("autoReinvest", "Auto Reinvest", "switch", default=False),
        ),
    ),
    ActionSpec(
        type_name="bridge",
        label="BTC Bridge",
        description="Bridge BTC to sBTC",
        category="bitcoin",
        parameters=(
            ParamSpec("sourceChain", "Source Chain", "select", required=True, options=("Bitcoin", "sBTC Network"), default="Bitcoin"),
            ParamSpec("targetChain", "Target Chain", "select", required=True, options=("Bitcoin", "sBTC Network"), default="sBTC Network"),
            ParamSpec("amount", "Amount", required=True, default="0.1"),
        ),
    ),
    ActionSpec(
        type_name="lightning",
        label="Lightning",
        description="Lightning payment",
        category="bitcoin",
        parameters=(
            ParamSpec("recipient", "Recipient", required=True),
            ParamSpec("amount", "Amount", required=True, default="0.01"),
            ParamSpec("memo", "Memo"),
        ),
    ),
)


NODE_TEMPLATES: tuple[NodeTemplate, ...] = tuple(
    NodeTemplate(
        kind="action",
        label=spec.label,
        description=spec.description,
        category=spec.category,
        action_type=spec.type_name,
    )
    for spec in BUILTIN_ACTIONS
) + (
    NodeTemplate(kind="condition", label="Condition", description="Branch the flow based on a condition", category="logic"),
    NodeTemplate(kind="startEnd", label="Start", description="Starting point of the workflow", category="flow", sub_type="start"),
    NodeTemplate(kind="startEnd", label="End", description="Ending point of the workflow", category="flow", sub_type="end"),
)


def register_builtin_actions(registry: ActionRegistry) -> None:
    for spec in BUILTIN_ACTIONS:
        registry.register(spec)


def default_registry() -> ActionRegistry:
    registry = ActionRegistry()
    register_builtin_actions(registry)
    return registry


def find_template(key: str) -> NodeTemplate | None:
    for template in NODE_TEMPLATES:
        if template.key == key:
            return template
    return None


def create_node_from_template(
    template: NodeTemplate,
    position: dict[str, float] | None = None,
    registry: ActionRegistry | None = None,
) -> Node:
    """Build a fresh node with a generated id and the template's default config."""
    config: dict[str, Any] = {}
    if template.kind == "action" and template.action_type:
        spec = (registry or default_registry()).find(template.action_type)
        if spec is not None:
            config = spec.default_config()

    node = Node(
        kind=template.kind,
        action_type=template.action_type,
        sub_type=template.sub_type,
        label=template.label,
        config=config,
    )
    if position is not None:
        node.position = dict(position)
    return node
