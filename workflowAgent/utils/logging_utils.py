"""Logging utilities for WorkflowAgent."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional


def setup_logging(level: int = logging.INFO, log_dir: str = "logs") -> logging.Logger:
    """Setup logging configuration for WorkflowAgent.

    Detailed logs go to a timestamped file under ``log_dir``; warnings and above
    are also echoed to the console.

    Args:
        level: File handler level (default: INFO)
        log_dir: Directory for log files

    Returns:
        Configured logger instance
    """
    logs_dir = Path(log_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_file = logs_dir / f"workflowagent_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

    logger = logging.getLogger("workflowAgent")
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    logger.handlers = []

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    logger.info("=" * 80)
    logger.info("WorkflowAgent session started")
    logger.info(f"Log file: {log_file}")
    logger.info("=" * 80)

    return logger


def log_routing_decision(logger: logging.Logger, from_node: str, decision: str, reason: str = "") -> None:
    """Log routing decision.

    Args:
        logger: Logger instance
        from_node: Source node making the decision
        decision: Routing destination
        reason: Reason for the routing decision
    """
    logger.info(f"Routing decision from {from_node}: → {decision}")
    if reason:
        logger.info(f"  → Reason: {reason}")


def log_node_entry(logger: logging.Logger, node_name: str, state: Dict[str, Any]) -> None:
    """Log node entry with a compact state snapshot."""
    logger.debug(f"ENTERING NODE: {node_name}")
    logger.debug(f"  - messages: {len(state.get('messages', []))}")
    logger.debug(f"  - coordination_log: {len(state.get('coordination_log', []))} entries")
    logger.debug(f"  - next_phase: {state.get('next_phase')}")
    logger.debug(f"  - mode: {state.get('mode', 'build')}")


def log_node_exit(logger: logging.Logger, node_name: str, updates: Dict[str, Any]) -> None:
    """Log node exit with state updates."""
    logger.debug(f"EXITING NODE: {node_name}")
    for key, value in updates.items():
        if key in {"messages", "coordination_log", "workflow_operations"} and isinstance(value, list):
            logger.debug(f"  - {key}: +{len(value)}")
        else:
            logger.debug(f"  - {key}: {value}")


def log_tool_call(logger: logging.Logger, tool_name: str, args: Dict[str, Any], iteration: Optional[int] = None) -> None:
    """Log tool invocation.

    Args:
        logger: Logger instance
        tool_name: Name of the tool being called
        args: Tool arguments
        iteration: Agent loop iteration (1-based), if any
    """
    suffix = f" (iteration {iteration})" if iteration is not None else ""
    logger.info(f"Tool call: {tool_name}{suffix}")
    logger.debug(f"  Arguments: {json.dumps(args, ensure_ascii=False, default=str)}")


def log_tool_result(
    logger: logging.Logger, tool_name: str, result: Any, success: bool = True, max_length: int = 500
) -> None:
    """Log tool execution result (truncated preview)."""
    status = "✓ Success" if success else "✗ Failed"
    logger.info(f"Tool result: {tool_name} - {status}")

    result_str = str(result)
    if len(result_str) > max_length:
        result_str = result_str[:max_length] + "... (truncated)"
    logger.debug(f"  Result: {result_str}")


def log_user_message(logger: logging.Logger, content: str, max_length: int = 100) -> None:
    """Log user input."""
    logger.info(f"User input: {content[:max_length]}{'...' if len(content) > max_length else ''}")
