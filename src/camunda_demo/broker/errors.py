"""
Broker error types.

The Camunda REST API reports failures as RFC 7807 problem documents:
{"type": ..., "title": ..., "status": ..., "detail": ..., "instance": ...}
"""

from typing import Any, Dict, Optional


class BrokerError(Exception):
    """Base class for all errors raised while talking to the broker."""

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        title: Optional[str] = None,
        detail: Optional[str] = None,
    ):
        super().__init__(message)
        self.status = status
        self.title = title
        self.detail = detail


class BrokerConnectionError(BrokerError):
    """Broker could not be reached (connection refused, timeout)."""


class BrokerRequestError(BrokerError):
    """Broker answered with an error status (rejected command, unknown key)."""

    @classmethod
    def from_problem(
        cls,
        method: str,
        path: str,
        status: int,
        problem: Optional[Dict[str, Any]],
    ) -> "BrokerRequestError":
        problem = problem or {}
        title = problem.get("title")
        detail = problem.get("detail")
        message = f"{method} {path} failed with {status}"
        if title:
            message += f": {title}"
        if detail:
            message += f" ({detail})"
        return cls(message, status=status, title=title, detail=detail)


class ClientClosedError(BrokerError):
    """Client was used after close()."""
