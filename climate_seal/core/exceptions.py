"""Custom exception types for domain and API layers."""


class AppError(Exception):
    """Base app exception."""


class ValidationError(AppError):
    """Validation failure for user input or imported documents."""


class NotFoundError(AppError):
    """Requested node, checkpoint or record does not exist."""


class IntegrationError(AppError):
    """External integration call failure."""


class LLMResponseError(IntegrationError):
    """LLM reply was empty, not JSON, or structurally invalid."""
