"""HTTP collaborator contract.

The core only needs one capability: execute an authenticated request against
the local node and hand back the status plus the decoded JSON body.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class HttpRequest:
    method: str
    url: str
    username: str
    password: str = field(repr=False)
    body: dict[str, Any] | None = None


@dataclass(frozen=True)
class HttpResponse:
    status: int
    body: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class HttpExecutor(Protocol):
    """Minimal contract for the HTTP client.

    - `execute` blocks until the node answers; timeouts belong to the transport.
    - Non-2xx statuses are returned, not raised.
    """

    def execute(self, request: HttpRequest) -> HttpResponse:
        ...
