"""
errors.py — AppError hierarchy and error code registry.

Every error surfaced by the Trip Ledger core or API must use a code defined
here. Do not raise strings or generic exceptions from service or route code.

Taxonomy:
  ValidationError (422) — bad split-policy or settlement input. The caller
                          corrects the request; nothing is retried.
  NotFoundError   (404) — a referenced member or expense is absent
                          from the supplied snapshot.
  AppError        (any) — base class; also used directly for integrity
                          failures (500).

The core performs no I/O, so there are no transient failures. Every error is
a deterministic function of the input and is raised synchronously.
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


class ValidationError(AppError):
    """Split-policy or settlement input that cannot be accepted as given."""

    def __init__(self, code: str, message: str, field: str | None = None) -> None:
        super().__init__(code, message, 422, field=field)


class NotFoundError(AppError):
    """A member or expense referenced by the caller is not in the snapshot."""

    def __init__(self, code: str, message: str, field: str | None = None) -> None:
        super().__init__(code, message, 404, field=field)


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
# These are the string values sent in the API response.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"
    INVALID_AMOUNT_PRECISION   = "INVALID_AMOUNT_PRECISION"
    INVALID_SPLIT_TYPE         = "INVALID_SPLIT_TYPE"
    DUPLICATE_SPLIT_USER       = "DUPLICATE_SPLIT_USER"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    USER_NOT_FOUND             = "USER_NOT_FOUND"
    EXPENSE_NOT_FOUND          = "EXPENSE_NOT_FOUND"

    # ── Split / Settlement Rule Violations (422) ──────────────────────────
    INVALID_AMOUNT             = "INVALID_AMOUNT"
    MISSING_SPLITS             = "MISSING_SPLITS"
    MISSING_PERCENTAGE         = "MISSING_PERCENTAGE"
    NO_PARTICIPANTS            = "NO_PARTICIPANTS"
    SPLIT_USER_NOT_MEMBER      = "SPLIT_USER_NOT_MEMBER"
    SPLIT_SUM_MISMATCH         = "SPLIT_SUM_MISMATCH"
    PERCENTAGE_SUM_MISMATCH    = "PERCENTAGE_SUM_MISMATCH"
    SELF_SETTLEMENT            = "SELF_SETTLEMENT"

    # ── System Errors (500) ────────────────────────────────────────────────
    BALANCE_INTEGRITY          = "BALANCE_INTEGRITY"
    INTERNAL_ERROR             = "INTERNAL_ERROR"


# ── Warning Code Registry ──────────────────────────────────────────────────
#
# Warnings are returned alongside a 2xx response in the `warnings` array.
# They do not block the request.
# ──────────────────────────────────────────────────────────────────────────

class WarningCode:

    # Settlement amount exceeds the current outstanding debt between the two
    # parties. Still acceptable; pre-payment is valid.
    OVERPAYMENT = "OVERPAYMENT"
