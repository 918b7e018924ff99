from defiflow.models import Workflow, WorkflowPatch


def test_create_and_get(store, swap_workflow):
    store.create_workflow(swap_workflow)
    loaded = store.get_workflow("wf-swap")
    assert loaded == swap_workflow
    assert loaded.nodes[1].action_type == "defiSwap"


def test_missing_workflow(store):
    assert store.get_workflow("nope") is None
    assert store.update_workflow("nope", WorkflowPatch(name="x")) is None
    assert store.delete_workflow("nope") is False


def test_list_workflows(store, swap_workflow):
    store.create_workflow(swap_workflow)
    store.create_workflow(Workflow(name="other"))
    assert {w.name for w in store.list_workflows()} == {"SOL to USDC", "other"}


def test_partial_update_touches_timestamp(store, swap_workflow):
    store.create_workflow(swap_workflow)
    before = store.get_workflow("wf-swap")

    updated = store.update_workflow("wf-swap", WorkflowPatch(name="Renamed"))

    assert updated.name == "Renamed"
    assert updated.nodes == before.nodes
    assert updated.created == before.created
    assert updated.updated >= before.updated
    assert store.get_workflow("wf-swap").name == "Renamed"


def test_update_replaces_graph(store, swap_workflow):
    store.create_workflow(swap_workflow)
    updated = store.update_workflow("wf-swap", WorkflowPatch(nodes=swap_workflow.nodes[:1], edges=[]))
    assert [n.id for n in updated.nodes] == ["S"]
    assert updated.edges == []


def test_execution_lifecycle(store, swap_workflow):
    store.create_workflow(swap_workflow)
    execution = store.create_execution("wf-swap")
    assert execution.status == "running"
    assert execution.finished_at is None

    store.finish_execution(execution.id, status="completed", result={"success": True, "output_amount": 5})

    finished = store.get_execution(execution.id)
    assert finished.status == "completed"
    assert finished.result == {"success": True, "output_amount": 5}
    assert finished.finished_at is not None
    assert [e.id for e in store.list_executions("wf-swap")] == [execution.id]


def test_failed_execution_keeps_error(store, swap_workflow):
    store.create_workflow(swap_workflow)
    execution = store.create_execution("wf-swap")
    store.finish_execution(execution.id, status="failed", error="boom")
    failed = store.get_execution(execution.id)
    assert failed.error == "boom"
    assert failed.result is None


def test_delete_cascades_executions(store, swap_workflow):
    store.create_workflow(swap_workflow)
    execution = store.create_execution("wf-swap")

    assert store.delete_workflow("wf-swap") is True

    assert store.get_workflow("wf-swap") is None
    assert store.get_execution(execution.id) is None
    assert store.list_executions("wf-swap") == []
