"""Operations controller: HTTP front door over the dispatch table."""

from __future__ import annotations

import base64
import hmac
from typing import Any

from litestar import Controller, Request, post
from litestar.exceptions import SerializationException
from litestar.response import Response

from assetvault.access import Principal
from assetvault.dispatch import dispatch
from assetvault.results import INTERNAL_ERROR_KIND

STATUS_BY_ERROR_KIND = {
    "validation": 422,
    "not_found": 404,
    "conflict": 409,
    "access_denied": 403,
    "backend": 502,
    "unsupported": 400,
    INTERNAL_ERROR_KIND: 500,
}


def _authenticate(request: Request) -> Principal | None:
    """Resolve the bearer token against the configured principals."""
    auth_header = request.headers.get("authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    token = auth_header[7:]
    principals: dict[str, Principal] = getattr(request.app.state, "principals", {})
    for known_token, principal in principals.items():
        if hmac.compare_digest(token, known_token):
            return principal
    return None


def _encode_payload(payload: dict[str, Any]) -> dict[str, Any]:
    content = payload.get("content")
    if isinstance(content, bytes):
        payload = {**payload, "content": base64.b64encode(content).decode("ascii"), "contentEncoding": "base64"}
    if isinstance(payload.get("data"), bytes):
        # Undecodable content is only returned once, as base64
        payload = {k: v for k, v in payload.items() if k != "data"}
    return payload


class OperationsController(Controller):
    path = "/operations"

    @post("/{operation:str}")
    async def handle(self, request: Request, operation: str) -> Response:
        principal = _authenticate(request)
        if principal is None:
            return Response(content={"success": False, "error": "Unauthorized"}, status_code=401)

        try:
            params = await request.json()
        except SerializationException:
            return Response(
                content={"success": False, "error": "Body must be JSON", "errorKind": "validation"},
                status_code=422,
            )
        if params is None:
            params = {}
        if not isinstance(params, dict):
            return Response(
                content={"success": False, "error": "Body must be a JSON object", "errorKind": "validation"},
                status_code=422,
            )

        result = await dispatch(request.app.state.dispatch_table, operation, principal, params)
        if not result.success:
            return Response(
                content=result.to_dict(),
                status_code=STATUS_BY_ERROR_KIND.get(result.error_kind, 500),
            )

        body = {"success": True, **_encode_payload(result.payload)}
        return Response(content=body, status_code=200)
