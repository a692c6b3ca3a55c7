"""Unit tests for settings, model wiring, prompts, error sanitizing and logging helpers."""

import logging
import os

import pytest
from pydantic import ValidationError

from workflowAgent.config.settings import ModelRoutingSettings, ObservabilitySettings, OrchestrationSettings, Settings
from workflowAgent.runtime.model_resolver import STAGES, StageLLMs, build_stage_llms, resolve_stage_configs
from workflowAgent.utils.error_handler import (
    GENERIC_ERROR_MESSAGE,
    PhaseExecutionError,
    TurnCancelledError,
    sanitize_llm_error_message,
)
from workflowAgent.telemetry import configure_tracing
from workflowAgent.utils.logging_utils import (
    log_routing_decision,
    log_tool_call,
    log_tool_result,
    log_user_message,
    setup_logging,
)
from workflowAgent.utils.prompt_builder import PromptBuilder


class TestSettings:
    def test_orchestration_from_env(self, monkeypatch):
        monkeypatch.setenv("MAX_TRIAGE_ITERATIONS", "7")
        monkeypatch.setenv("FEAT_MERGE_ASK_BUILD", "true")
        monkeypatch.setenv("PLAN_MODE", "1")

        settings = OrchestrationSettings()

        assert settings.max_triage_iterations == 7
        assert settings.merge_ask_build is True
        assert settings.plan_mode is True

    def test_iteration_cap_bounds(self, monkeypatch):
        monkeypatch.setenv("MAX_TRIAGE_ITERATIONS", "0")
        with pytest.raises(ValidationError):
            OrchestrationSettings()

    def test_defaults(self, monkeypatch):
        for name in ("MAX_TRIAGE_ITERATIONS", "MERGE_ASK_BUILD", "FEAT_MERGE_ASK_BUILD", "ENABLE_TRIAGE"):
            monkeypatch.delenv(name, raising=False)
        settings = OrchestrationSettings()
        assert settings.max_triage_iterations == 10
        assert settings.merge_ask_build is False
        assert settings.enable_triage is False

    def test_stage_model_falls_back_to_default(self):
        models = ModelRoutingSettings(default="base-model", builder="big-model")
        assert models.for_stage("builder") == "big-model"
        assert models.for_stage("supervisor") == "base-model"


class TestModelResolver:
    def test_resolve_stage_configs(self):
        settings = Settings(models=ModelRoutingSettings(default="m", api_key="k", responder="r"))
        configs = resolve_stage_configs(settings)
        assert set(configs) == set(STAGES)
        assert configs["responder"]["id"] == "r"
        assert configs["triage"]["id"] == "m"

    def test_shared_configs_share_a_client(self):
        settings = Settings(models=ModelRoutingSettings(default="gpt-4o-mini", api_key="sk-test", builder="gpt-4o"))
        llms = build_stage_llms(settings)
        assert llms.supervisor is llms.responder
        assert llms.builder is not llms.supervisor
        assert llms.builder.model_name == "gpt-4o"

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("MODEL_API_KEY", raising=False)
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        settings = Settings(models=ModelRoutingSettings(default="gpt-4o-mini"))
        with pytest.raises(RuntimeError, match="Missing API key"):
            build_stage_llms(settings)

    def test_uniform(self):
        sentinel = object()
        llms = StageLLMs.uniform(sentinel)
        assert all(getattr(llms, stage) is sentinel for stage in STAGES)


class TestPromptBuilder:
    def test_supervisor_assistant_option(self):
        merged = PromptBuilder.load_supervisor_prompt(merge_ask_build=True)
        build_only = PromptBuilder.load_supervisor_prompt(merge_ask_build=False)

        assert "- assistant:" in merged
        assert "- assistant:" not in build_only
        assert "2. Does the request involve NEW" in build_only
        assert "4. Does the request involve NEW" in merged

    @pytest.mark.parametrize(
        "loader",
        [PromptBuilder.load_responder_prompt, PromptBuilder.load_compact_prompt, PromptBuilder.load_workflow_name_prompt],
    )
    def test_static_prompts_render(self, loader):
        assert loader().strip()

    def test_triage_prompt_sections(self):
        text = PromptBuilder.load_triage_prompt(history=[], selected_nodes="- A")
        assert "<selected_nodes>\n- A\n</selected_nodes>" in text


class TestSanitizeErrors:
    @pytest.mark.parametrize(
        "raw,expected_fragment",
        [
            ("Error code: 429 - rate_limit_exceeded", "too many requests"),
            ("Request timed out", "took too long"),
            ("This model's maximum context length is 128000 tokens", "too long to process"),
            ("Error code: 401 - invalid_api_key sk-abc123", "rejected the credentials"),
            ("You exceeded your current quota", "quota"),
            ("503 Service Unavailable: overloaded", "overloaded"),
        ],
    )
    def test_known_provider_errors(self, raw, expected_fragment):
        message = sanitize_llm_error_message(RuntimeError(raw))
        assert expected_fragment in message
        assert "sk-abc123" not in message

    def test_unknown_error_is_generic(self):
        assert sanitize_llm_error_message(KeyError("internal_field")) == GENERIC_ERROR_MESSAGE

    def test_curated_user_message_kept(self):
        error = PhaseExecutionError("discovery crashed at step 3", user_message="Discovery could not finish.")
        assert sanitize_llm_error_message(error) == "Discovery could not finish."

    def test_cancelled(self):
        assert sanitize_llm_error_message(TurnCancelledError()) == "The request was cancelled."


class TestLoggingUtils:
    def test_routing_decision(self, caplog):
        logger = logging.getLogger("workflowAgent.tests.routing")
        with caplog.at_level(logging.INFO, logger="workflowAgent.tests.routing"):
            log_routing_decision(logger, "supervisor", "builder_subgraph", "needs nodes")
        assert "Routing decision from supervisor: → builder_subgraph" in caplog.text
        assert "Reason: needs nodes" in caplog.text

    def test_tool_call_iteration(self, caplog):
        logger = logging.getLogger("workflowAgent.tests.tools")
        with caplog.at_level(logging.INFO, logger="workflowAgent.tests.tools"):
            log_tool_call(logger, "ask_assistant", {"query": "q"}, iteration=2)
        assert "Tool call: ask_assistant (iteration 2)" in caplog.text

    def test_setup_logging_writes_file(self, tmp_path):
        package_logger = logging.getLogger("workflowAgent")
        saved = (package_logger.handlers[:], package_logger.propagate, package_logger.level)
        try:
            logger = setup_logging(log_dir=str(tmp_path / "logs"))
            logger.info("hello from test")
            for handler in logger.handlers:
                handler.flush()

            files = list((tmp_path / "logs").glob("workflowagent_*.log"))
            assert len(files) == 1
            assert "hello from test" in files[0].read_text(encoding="utf-8")
        finally:
            for handler in package_logger.handlers:
                handler.close()
            package_logger.handlers = saved[0]
            package_logger.propagate = saved[1]
            package_logger.setLevel(saved[2])

    def test_tool_result_truncated_to_limit(self, caplog):
        logger = logging.getLogger("workflowAgent.tests.results")
        with caplog.at_level(logging.DEBUG, logger="workflowAgent.tests.results"):
            log_tool_result(logger, "ask_assistant", "x" * 300, max_length=120)
        assert f"Result: {'x' * 120}... (truncated)" in caplog.text
        assert "x" * 121 not in caplog.text

    def test_user_message_truncated_to_limit(self, caplog):
        logger = logging.getLogger("workflowAgent.tests.input")
        with caplog.at_level(logging.INFO, logger="workflowAgent.tests.input"):
            log_user_message(logger, "a" * 50 + "b" * 50, max_length=50)
        assert f"User input: {'a' * 50}..." in caplog.text
        assert "b" not in caplog.text.split("User input: ")[1]


TRACING_VARS = ("LANGCHAIN_PROJECT", "LANGCHAIN_API_KEY", "LANGCHAIN_ENDPOINT", "LANGCHAIN_TRACING_V2")


class TestTracing:
    @pytest.fixture(autouse=True)
    def restore_env(self, monkeypatch):
        # Record the current values so monkeypatch restores them after the test
        for name in TRACING_VARS:
            monkeypatch.setenv(name, "placeholder")
            monkeypatch.delenv(name)

    def test_enabled_exports_environment(self):
        settings = ObservabilitySettings(
            langsmith_project="workflow-builder",
            langsmith_api_key="ls-key",
            langsmith_endpoint="https://smith.example.com",
            tracing_enabled=True,
        )

        assert configure_tracing(settings) is True
        assert os.environ["LANGCHAIN_PROJECT"] == "workflow-builder"
        assert os.environ["LANGCHAIN_API_KEY"] == "ls-key"
        assert os.environ["LANGCHAIN_ENDPOINT"] == "https://smith.example.com"
        assert os.environ["LANGCHAIN_TRACING_V2"] == "true"

    def test_disabled_leaves_tracing_off(self):
        settings = ObservabilitySettings(
            langsmith_project="workflow-builder", langsmith_api_key=None, tracing_enabled=False
        )

        assert configure_tracing(settings) is False
        assert os.environ["LANGCHAIN_PROJECT"] == "workflow-builder"
        assert "LANGCHAIN_TRACING_V2" not in os.environ
        assert "LANGCHAIN_API_KEY" not in os.environ

    def test_prompt_log_length_bounds(self):
        with pytest.raises(ValidationError):
            ObservabilitySettings(log_prompt_max_length=50)
