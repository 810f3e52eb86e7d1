"""Per-request correlation context.

A RequestContext is built once by RequestContextMiddleware, stored on
``request.state`` and then handed explicitly to every service call made
while serving that request. Background jobs build their own context from
the job id.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class RequestContext:
    """Immutable correlation data for one unit of work.

    Attributes:
        correlation_id: Always set. Echoed back on the response headers.
        trace_id: The id the caller supplied, if any. Only this value is
            reported in error envelopes.
        path: Request path (or a pseudo-path for background jobs).
        method: HTTP method, empty for background jobs.
    """

    correlation_id: str
    trace_id: str | None = None
    path: str = ""
    method: str = ""

    @classmethod
    def from_headers(cls, headers, path: str, method: str) -> RequestContext:
        """Build a context from inbound headers, generating an id when absent.

        ``X-Correlation-ID`` wins over ``X-Request-ID`` when both are sent.
        """
        inbound = headers.get(CORRELATION_ID_HEADER) or headers.get(REQUEST_ID_HEADER)
        return cls(
            correlation_id=inbound or generate_correlation_id(),
            trace_id=inbound or None,
            path=path,
            method=method,
        )

    @classmethod
    def for_job(cls, job_id: str, queue: str) -> RequestContext:
        return cls(correlation_id=job_id, trace_id=job_id, path=f"queue://{queue}")

    def log_fields(self) -> dict[str, str]:
        fields = {"trace_id": self.correlation_id, "path": self.path}
        if self.method:
            fields["method"] = self.method
        return fields
