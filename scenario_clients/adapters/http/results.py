from __future__ import annotations

import json as jsonlib
from dataclasses import dataclass
from typing import Any, ClassVar

import httpx

from scenario_clients.shared.result import ClientResult, Outcome

from .errors import error_for_response


@dataclass(frozen=True)
class HttpResponseResult(ClientResult):
    """
    Response envelope.  Non-2xx responses are failure results that still carry
    ``status``, ``headers`` and ``body`` so they can be inspected.
    """

    kind: ClassVar[str] = "http"

    status: int | None = None
    headers: httpx.Headers | None = None
    body: bytes | None = None
    url: str | None = None

    @classmethod
    def from_response(cls, response: httpx.Response, duration: float) -> "HttpResponseResult":
        envelope = {
            "status": response.status_code,
            "headers": response.headers,
            "body": response.content or None,
            "url": str(response.url),
        }
        if response.is_success:
            return cls.success(duration=duration, **envelope)
        return cls(
            duration=duration,
            outcome=Outcome.error,
            error=error_for_response(response),
            **envelope,
        )

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type") if self.headers is not None else None

    def text(self) -> str | None:
        if self.body is None:
            return None
        return self.body.decode(_charset(self.content_type))

    def json(self) -> Any:
        if self.body is None:
            return None
        return jsonlib.loads(self.body)


def _charset(content_type: str | None) -> str:
    if content_type:
        for part in content_type.split(";")[1:]:
            name, _, value = part.strip().partition("=")
            if name.lower() == "charset" and value:
                return value.strip('"')
    return "utf-8"
