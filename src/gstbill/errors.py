"""Exception hierarchy shared by the billing core, workflow and store."""

from __future__ import annotations


class GstBillError(Exception):
    """Base error carrying a reason ``code`` and structured ``details``."""

    default_code = "GENERIC"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}

    def as_cells(self) -> list[str]:
        """Serialise the error for tabular export."""

        return [self.code, self.message]


class ValidationError(GstBillError):
    """Invalid line or record input, rejected before any computation."""

    default_code = "INVALID_INPUT"


class BusinessRuleError(GstBillError):
    """Workflow rule violated, e.g. saving an invoice without a party."""

    default_code = "BUSINESS_RULE"


class GatewayError(GstBillError):
    """Persistence failure. Nothing was applied when this is raised."""

    default_code = "STORAGE_FAILURE"


__all__ = ["BusinessRuleError", "GatewayError", "GstBillError", "ValidationError"]
