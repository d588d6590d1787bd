"""Domain errors raised by the pool services.

Services raise these; routers translate them into HTTP responses. Every
error carries a stable ``code`` the admin UI renders as plain text, plus
optional ``details`` (e.g. ``{"required": 56, "actual": 55}``).
"""

from __future__ import annotations

from typing import Any


class PoolError(Exception):
    """Base class for all pool errors."""

    code = "pool_error"

    def __init__(self, code: str | None = None, message: str | None = None, **details: Any):
        self.code = code or self.code
        self.details = details
        super().__init__(message or self.code)

    def as_detail(self) -> dict[str, Any]:
        return {"error": self.code, **self.details}


class NotFoundError(PoolError):
    """Referenced entity does not exist."""

    code = "not_found"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(message=f"{entity} {entity_id} not found", entity=entity, id=entity_id)


class PreconditionError(PoolError):
    """Recoverable rejection: the request is valid but the state forbids it."""

    code = "precondition_failed"


class LedgerReplaceError(PoolError):
    """The ledger replace for a match failed; old rows are still in place.

    Retryable: nothing was committed for the match.
    """

    code = "ledger_replace_failed"
