"""
Domain-specific exception hierarchy for the order-file pipeline.

All pipeline exceptions inherit from PipelineError so callers can
catch broadly or narrowly as needed.  Each exception carries structured
context (step name, execution ID, etc.) for logging, and a stable
``code`` that is copied into verdicts and processing results.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    code = "PipelineError"

    def __init__(
        self,
        message: str,
        *,
        execution_id: str | None = None,
        step_name: str | None = None,
        details: dict | None = None,
    ) -> None:
        self.execution_id = execution_id
        self.step_name = step_name
        self.details = details or {}
        super().__init__(message)


class StepExecutionError(PipelineError):
    """A step failed during execution (retryable steps retry on this)."""

    code = "StepExecutionError"


class StepRetryExhaustedError(PipelineError):
    """A retryable step exhausted all retry attempts."""

    code = "StepRetryExhausted"

    def __init__(
        self,
        message: str,
        *,
        attempts: int = 0,
        **kwargs,
    ) -> None:
        self.attempts = attempts
        super().__init__(message, **kwargs)


class InvalidInputError(PipelineError):
    """The parser was handed something that is not order-file text."""

    code = "InvalidInput"


class NoOrdersFoundError(PipelineError):
    """A file parsed cleanly but contained no complete order group."""

    code = "NoOrdersFound"


class NoResolvableItemsError(PipelineError):
    """Every line item's product code is missing from the catalog."""

    code = "NoResolvableItems"

    def __init__(
        self,
        message: str,
        *,
        missing_skus: list[str] | None = None,
        **kwargs,
    ) -> None:
        self.missing_skus = missing_skus or []
        super().__init__(message, **kwargs)


class APIRequestError(PipelineError):
    """A commerce API request failed."""

    code = "APIRequestError"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        response_body: str | None = None,
        **kwargs,
    ) -> None:
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(message, **kwargs)


class SubmissionFailedError(APIRequestError):
    """The commerce API rejected the order."""

    code = "SubmissionFailed"


class CustomerResolutionError(APIRequestError):
    """Find-or-create of the order's customer failed."""

    code = "CustomerResolutionFailed"


class CustomerCreationFailedError(CustomerResolutionError):
    """Customer creation returned no id."""

    code = "CustomerCreationFailed"


class NoCustomerIdError(CustomerResolutionError):
    """No usable customer id after search and create."""

    code = "NoCustomerId"


class ChannelError(PipelineError):
    """File channel connect/list/fetch/delete failure."""

    code = "ChannelError"


class DispatchTimeoutError(PipelineError):
    """The cross-process hand-off produced no verdict in time."""

    code = "DispatchTimeout"
