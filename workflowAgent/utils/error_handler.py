"""Unified error types and user-facing error sanitization."""

from __future__ import annotations


class WorkflowAgentError(Exception):
    """Base exception for WorkflowAgent errors."""

    def __init__(self, message: str, user_message: str = None):
        super().__init__(message)
        self.user_message = user_message or message


class PhaseExecutionError(WorkflowAgentError):
    """Error raised inside a specialist phase."""
    pass


class ModelInvocationError(WorkflowAgentError):
    """Error during model invocation."""
    pass


class AssistantSdkError(WorkflowAgentError):
    """The knowledge-assistant service returned an unusable response."""
    pass


class TurnCancelledError(WorkflowAgentError):
    """The turn's cancellation token fired while work was in flight."""

    def __init__(self, message: str = "Turn was cancelled"):
        super().__init__(message, user_message="The request was cancelled.")


GENERIC_ERROR_MESSAGE = "Something went wrong while processing your request. Please try again."


def sanitize_llm_error_message(error: BaseException) -> str:
    """Convert an arbitrary error into a short, user-safe message.

    Never includes stack traces or raw provider payloads. Errors that already carry
    a curated ``user_message`` keep it.

    Args:
        error: Exception raised during a phase

    Returns:
        User-friendly error message
    """
    if isinstance(error, WorkflowAgentError) and error.user_message != str(error):
        return error.user_message

    error_str = str(error).lower()

    if "rate_limit" in error_str or "rate limit" in error_str or "429" in error_str:
        return "The AI service is receiving too many requests. Please wait a moment and try again."

    if "timeout" in error_str or "timed out" in error_str:
        return "The AI service took too long to respond. Please try again."

    if "context_length" in error_str or "context length" in error_str or "too many tokens" in error_str:
        return "The conversation is too long to process. Please start a new conversation or use /compact."

    if "invalid_api_key" in error_str or "authentication" in error_str or "401" in error_str:
        return "The AI service rejected the credentials. Please contact your administrator."

    if "quota" in error_str or "insufficient" in error_str:
        return "The AI service quota has been exhausted. Please contact your administrator."

    if "overloaded" in error_str or "529" in error_str or "503" in error_str:
        return "The AI service is temporarily overloaded. Please try again shortly."

    return GENERIC_ERROR_MESSAGE
