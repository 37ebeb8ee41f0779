# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""CORS middleware for Starlette driven by a compiled Policy, as pure ASGI."""

from __future__ import annotations

from typing import Any

from starlette.datastructures import Headers, MutableHeaders
from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp, Receive, Scope, Send

from corspolicy.policy import VARY, Policy, PreflightDenied
from corspolicy.reload import PolicyReference


class PolicyCORSMiddleware:
    """Applies a :class:`~corspolicy.policy.Policy` to every HTTP request.

    Accepts either a Policy or a PolicyReference; with a reference the live
    policy is read once per request, so a concurrent reload never splits a
    single request across two policies.

    Uses raw ASGI protocol instead of ``BaseHTTPMiddleware`` so streaming
    responses pass through untouched.
    """

    def __init__(self, app: ASGIApp, policy: Policy | PolicyReference) -> None:
        self.app = app
        self._source = policy

    @property
    def policy(self) -> Policy:
        if isinstance(self._source, PolicyReference):
            return self._source.current
        return self._source

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_headers = Headers(scope=scope)
        origin = request_headers.get("origin")
        if origin is None:
            await self.app(scope, receive, send)
            return

        policy = self.policy

        if scope["method"] == "OPTIONS" and "access-control-request-method" in request_headers:
            response = self._preflight(policy, origin, request_headers)
            await response(scope, receive, send)
            return

        cors_headers = policy.simple_response_headers(origin)
        varies = policy.varies_by_origin()

        async def send_with_cors(message: Any) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                if cors_headers is not None:
                    for name, value in cors_headers.items():
                        if name == VARY:
                            headers.add_vary_header(value)
                        else:
                            headers[name] = value
                elif varies:
                    headers.add_vary_header("Origin")
            await send(message)

        await self.app(scope, receive, send_with_cors)

    @staticmethod
    def _preflight(policy: Policy, origin: str, request_headers: Headers) -> Response:
        method = request_headers["access-control-request-method"]
        requested = request_headers.get("access-control-request-headers")

        headers = policy.preflight_response_headers(origin, method, requested)
        if headers is not None:
            return PlainTextResponse("OK", status_code=200, headers=headers)

        if not policy.origin_decision(origin).allowed:
            reason = "origin not allowed"
        else:
            result = policy.preflight_response(method, requested)
            reason = result.reason if isinstance(result, PreflightDenied) else "request not allowed"
        response = PlainTextResponse(f"Disallowed CORS request: {reason}", status_code=400)
        if policy.varies_by_origin():
            response.headers.add_vary_header("Origin")
        return response
