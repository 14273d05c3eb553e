"""
Base exception types for ragcore.

Every error carries a machine-readable ``code`` and a suggested HTTP status,
so callers that surface errors (a future API layer, task error messages,
structured logs) can map them without an isinstance ladder.
"""
from __future__ import annotations

import traceback
from typing import Any, Optional, Type


class ProjectError(Exception):
    """
    Root of the ragcore hierarchy.

    Subclasses override ``default_code`` / ``default_http_status``; the
    per-instance ``code`` and ``http_status`` arguments win over both.
    ``details`` holds identifiers useful in logs (task id, document id, file).
    """

    default_code: str = "ERROR"
    default_http_status: int = 500

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        http_status: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or type(self).default_code
        self.http_status = http_status or type(self).default_http_status
        self.details: dict[str, Any] = dict(details or {})
        self.cause = cause

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, code={self.code!r})"

    def to_dict(self, *, include_traceback: bool = False) -> dict[str, Any]:
        out: dict[str, Any] = {
            "type": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "http_status": self.http_status,
        }
        if self.details:
            out["details"] = dict(self.details)
        if self.cause is not None:
            out["cause"] = f"{type(self.cause).__name__}: {self.cause}"
            if include_traceback:
                out["cause_traceback"] = "".join(traceback.format_exception(
                    type(self.cause), self.cause, self.cause.__traceback__
                ))
        return out


def exception_factory(
    name: str,
    *,
    code: Optional[str] = None,
    http_status: int = 500,
    base: Type[ProjectError] = ProjectError,
    doc: Optional[str] = None,
) -> Type[ProjectError]:
    """
    Build a ProjectError subclass at import time, for error types that need
    no behaviour of their own::

        QueueError = exception_factory("QueueError", code="QUEUE_ERROR", http_status=502)
    """
    return type(
        name,
        (base,),
        {
            "__doc__": doc,
            "__module__": base.__module__,
            "default_code": code or name.upper(),
            "default_http_status": http_status,
        },
    )
