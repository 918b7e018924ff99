import random

import pytest

from defiflow.actions import default_registry
from defiflow.models import Edge, Node, Workflow
from defiflow.pricing import MockPricingEngine, StaticNoise
from defiflow.simulator import MockExecutionSimulator
from defiflow.store import SQLiteStore
from defiflow.tokens import DEVNET_MINTS

SOL = DEVNET_MINTS["WSOL"]
USDC = DEVNET_MINTS["USDC"]


async def no_sleep(_delay):
    return None


@pytest.fixture
def registry():
    return default_registry()


@pytest.fixture
def market():
    return {
        SOL: {"price": 150.0, "liquidity": 1_000_000},
        USDC: {"price": 1.0, "liquidity": 5_000_000},
    }


@pytest.fixture
def pricing(market):
    """Pricing engine with every random draw pinned to zero."""
    return MockPricingEngine(
        market,
        StaticNoise(shock=0.0, liquidity=0.0),
        volatility=0.02,
        fee_rate=0.003,
        max_price_impact_pct=5.0,
        default_slippage_bps=50,
    )


@pytest.fixture
def simulator():
    return MockExecutionSimulator(
        random.Random(7),
        sleep=no_sleep,
        failure_rate=0.0,
        min_delay_seconds=2.0,
        max_delay_seconds=4.0,
        execution_variance=0.0,
        auto_approve_without_signer=True,
    )


@pytest.fixture
def store(tmp_path):
    return SQLiteStore(str(tmp_path / "workflows.db"))


@pytest.fixture
def swap_workflow():
    return Workflow(
        id="wf-swap",
        name="SOL to USDC",
        nodes=[
            Node(id="S", kind="startEnd", sub_type="start", label="Start"),
            Node(
                id="swap",
                kind="action",
                action_type="defiSwap",
                label="Swap",
                config={"inputToken": "SOL", "outputToken": "USDC", "amount": "1", "slippageBps": "50"},
            ),
            Node(id="E", kind="startEnd", sub_type="end", label="End"),
        ],
        edges=[
            Edge(id="e1", source="S", target="swap"),
            Edge(id="e2", source="swap", target="E"),
        ],
    )
