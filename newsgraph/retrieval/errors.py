"""Error kinds raised by retrieval operations."""

from contextlib import contextmanager
import logging
from typing import Any, Iterator

from neo4j.exceptions import DriverError, Neo4jError, ServiceUnavailable, SessionExpired

log = logging.getLogger(__name__)


class RetrievalError(Exception):
    """Base error carrying the operation and parameters it happened in."""

    kind = "retrieval_error"

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        params: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.params = dict(params or {})

    def __str__(self) -> str:
        if self.operation:
            return f"{self.operation}: {self.message}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "message": str(self),
            "operation": self.operation,
        }


class InvalidArgument(RetrievalError, ValueError):
    """Malformed or missing parameter, raised before any I/O."""

    kind = "invalid_argument"


class StoreUnavailable(RetrievalError):
    """The graph store could not be reached. Callers may retry."""

    kind = "store_unavailable"


def _redact_params(params: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in params.items() if "password" not in k.lower()}


@contextmanager
def operation_context(operation: str, params: dict[str, Any]) -> Iterator[None]:
    """Attach operation context to errors escaping a retrieval operation."""
    safe_params = _redact_params(params)
    try:
        yield
    except RetrievalError as exc:
        if exc.operation is None:
            exc.operation = operation
            exc.params = safe_params
        raise
    except (ServiceUnavailable, SessionExpired, OSError) as exc:
        log.warning(f"{operation}: graph store unavailable: {exc}")
        raise StoreUnavailable(
            f"graph store unavailable: {exc}",
            operation=operation,
            params=safe_params,
        ) from exc
    except Neo4jError as exc:
        log.error(f"{operation}: graph store error: {exc}")
        raise RetrievalError(
            f"graph store error: {exc}",
            operation=operation,
            params=safe_params,
        ) from exc
    except DriverError as exc:
        log.error(f"{operation}: graph store driver error: {exc}")
        raise RetrievalError(
            f"graph store driver error: {exc}",
            operation=operation,
            params=safe_params,
        ) from exc
