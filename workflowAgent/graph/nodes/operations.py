"""Apply buffered workflow operations to the workflow document.

Phases never mutate ``workflow_json`` directly. They queue operations in
``workflow_operations`` and this node replays them in order, then clears the
queue.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List

from workflowAgent.graph.state import SimpleWorkflow, WorkflowState, empty_workflow

LOGGER = logging.getLogger(__name__)


def _drop_connections_for(connections: Dict[str, Any], removed: set) -> Dict[str, Any]:
    """Remove connections from or to any node in ``removed``.

    Connections are keyed by source node name:
    ``{source: {output_type: [[{"node": target, ...}, ...], ...]}}``.
    """
    result: Dict[str, Any] = {}
    for source, outputs in connections.items():
        if source in removed:
            continue
        new_outputs = {}
        for output_type, branches in (outputs or {}).items():
            new_outputs[output_type] = [
                [link for link in (branch or []) if link.get("node") not in removed]
                for branch in (branches or [])
            ]
        result[source] = new_outputs
    return result


def apply_operations(workflow: SimpleWorkflow, operations: List[Dict[str, Any]]) -> SimpleWorkflow:
    """Replay ``operations`` onto a copy of ``workflow``. Unknown types are skipped."""
    result: SimpleWorkflow = copy.deepcopy(workflow) if workflow else empty_workflow()
    result.setdefault("name", "")
    result.setdefault("nodes", [])
    result.setdefault("connections", {})

    for operation in operations:
        op_type = operation.get("type")

        if op_type == "clear":
            result = empty_workflow(result["name"])

        elif op_type == "set_name":
            result["name"] = operation.get("name", "")

        elif op_type == "add_nodes":
            existing = {node.get("id") for node in result["nodes"]}
            for node in operation.get("nodes", []):
                if node.get("id") in existing:
                    # Re-adding a node replaces it
                    result["nodes"] = [n for n in result["nodes"] if n.get("id") != node.get("id")]
                result["nodes"].append(copy.deepcopy(node))
                existing.add(node.get("id"))

        elif op_type == "remove_nodes":
            ids = set(operation.get("node_ids", []))
            removed_names = {n.get("name") for n in result["nodes"] if n.get("id") in ids}
            result["nodes"] = [n for n in result["nodes"] if n.get("id") not in ids]
            result["connections"] = _drop_connections_for(result["connections"], removed_names)

        elif op_type == "update_node":
            node_id = operation.get("node_id")
            updates = operation.get("updates", {})
            for node in result["nodes"]:
                if node.get("id") == node_id:
                    node.update(copy.deepcopy(updates))
                    break
            else:
                LOGGER.warning(f"update_node: node '{node_id}' not found, skipping")

        elif op_type == "set_connections":
            result["connections"] = copy.deepcopy(operation.get("connections", {}))

        elif op_type == "merge_connections":
            for source, outputs in operation.get("connections", {}).items():
                target_outputs = result["connections"].setdefault(source, {})
                for output_type, branches in outputs.items():
                    target_branches = target_outputs.setdefault(output_type, [])
                    for index, branch in enumerate(branches):
                        while len(target_branches) <= index:
                            target_branches.append([])
                        for link in branch:
                            if link not in target_branches[index]:
                                target_branches[index].append(copy.deepcopy(link))

        else:
            LOGGER.warning(f"Unknown workflow operation type: {op_type}")

    return result


async def process_operations_node(state: WorkflowState) -> dict:
    operations = list(state.get("workflow_operations") or [])
    if not operations:
        return {}

    workflow = apply_operations(state.get("workflow_json") or empty_workflow(), operations)
    LOGGER.info(
        f"Applied {len(operations)} workflow operation(s): "
        f"{len(workflow['nodes'])} node(s), {len(workflow['connections'])} connection source(s)"
    )
    return {"workflow_json": workflow, "workflow_operations": None}


__all__ = ["apply_operations", "process_operations_node"]
