from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar

from scenario_clients.shared.errors import ClientError
from scenario_clients.shared.result import ClientResult, Outcome

from .errors import StatusCode


@dataclass(frozen=True)
class RpcResult(ClientResult):
    """Unary call outcome.  Failures keep ``code`` and ``metadata`` for assertions."""

    kind: ClassVar[str] = "rpc"

    code: StatusCode | None = None
    message: Any = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failure(cls, error: ClientError, *, duration: float) -> "RpcResult":
        code = error.details.get("code")
        return cls(
            duration=duration,
            outcome=Outcome.error,
            error=error,
            code=StatusCode(code) if code is not None else StatusCode.UNKNOWN,
            metadata=dict(error.details.get("metadata") or {}),
        )
