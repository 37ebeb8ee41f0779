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
"""Compiled, immutable CORS policy and the queries a middleware runs against it.

Every query is a pure function of the policy and one request's origin,
method and header names. None of them raise: anything invalid was rejected
when the policy was compiled.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

from corspolicy.dimensions import PolicyDocument
from corspolicy.matchers import (
    AnyMatcher,
    DenyMatcher,
    ExactMatcher,
    HeaderRule,
    MethodRule,
    MirrorMatcher,
    OriginRule,
    PatternMatcher,
)
from corspolicy.validator import validate

ALLOW_ORIGIN = "Access-Control-Allow-Origin"
ALLOW_CREDENTIALS = "Access-Control-Allow-Credentials"
ALLOW_METHODS = "Access-Control-Allow-Methods"
ALLOW_HEADERS = "Access-Control-Allow-Headers"
EXPOSE_HEADERS = "Access-Control-Expose-Headers"
MAX_AGE = "Access-Control-Max-Age"
ALLOW_PRIVATE_NETWORK = "Access-Control-Allow-Private-Network"
VARY = "Vary"


class OriginDecision(str, Enum):
    """What to do with ``Access-Control-Allow-Origin`` for one request."""

    DENIED = "denied"
    ALLOWED_STATIC = "allowed_static"
    ALLOWED_REFLECT = "allowed_reflect"

    @property
    def allowed(self) -> bool:
        return self is not OriginDecision.DENIED


@dataclass(frozen=True)
class PreflightAllowed:
    """A successful preflight: the values to advertise."""

    methods: frozenset[str]
    headers: frozenset[str] = frozenset()
    max_age: int | None = None
    allow_credentials: bool = False
    allow_private_network: bool = False
    allowed: ClassVar[bool] = True


@dataclass(frozen=True)
class PreflightDenied:
    """A rejected preflight and why."""

    reason: str
    allowed: ClassVar[bool] = False


PreflightResponse = PreflightAllowed | PreflightDenied


def _render(values: Iterable[str]) -> str:
    return ", ".join(sorted(values))


def split_header_list(value: str | Iterable[str] | None) -> tuple[str, ...]:
    """Normalize an ``Access-Control-Request-Headers`` value to lower-cased names."""
    if value is None:
        return ()
    items = value.split(",") if isinstance(value, str) else value
    names = (item.strip().lower() for item in items)
    return tuple(dict.fromkeys(name for name in names if name))


@dataclass(frozen=True)
class Policy:
    """Immutable runtime CORS policy.

    Build it with :func:`corspolicy.compile_policy` or
    :func:`corspolicy.load_policy`. Constructing it directly re-runs the
    validator, so an illegal combination can never exist as a Policy.
    ``reflected`` names the dimensions whose ``*`` was turned into
    per-request reflection because credentials are allowed. It records how
    the policy was built and does not take part in equality.
    """

    allowed_origins: OriginRule = field(default_factory=DenyMatcher)
    allowed_methods: MethodRule = field(default_factory=DenyMatcher)
    allowed_headers: HeaderRule = field(default_factory=DenyMatcher)
    exposed_headers: HeaderRule = field(default_factory=DenyMatcher)
    allow_credentials: bool = False
    max_age: int | None = None
    allow_private_network: bool = False
    vary_origin: bool = False
    reflected: tuple[str, ...] = field(default=(), compare=False)
    _expose_value: str | None = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        validate(
            PolicyDocument(
                allowed_origins=self.allowed_origins,
                allowed_methods=self.allowed_methods,
                allowed_headers=self.allowed_headers,
                exposed_headers=self.exposed_headers,
                allow_credentials=self.allow_credentials,
                max_age_seconds=self.max_age,
                allow_private_network=self.allow_private_network,
                vary_origin=self.vary_origin,
            )
        )
        exposed = self.exposed_headers
        if isinstance(exposed, AnyMatcher):
            value: str | None = "*"
        elif isinstance(exposed, ExactMatcher):
            value = _render(exposed.values)
        else:
            value = None
        object.__setattr__(self, "_expose_value", value)

    # -- origin -------------------------------------------------------------

    def origin_decision(self, origin: str | None) -> OriginDecision:
        """Decide whether to omit, fix or echo ``Access-Control-Allow-Origin``."""
        if not origin:
            return OriginDecision.DENIED
        rule = self.allowed_origins
        if isinstance(rule, AnyMatcher):
            return OriginDecision.ALLOWED_STATIC
        if isinstance(rule, MirrorMatcher):
            return OriginDecision.ALLOWED_REFLECT
        if isinstance(rule, ExactMatcher):
            return OriginDecision.ALLOWED_STATIC if rule.matches(origin) else OriginDecision.DENIED
        if isinstance(rule, PatternMatcher):
            if rule.matches_exact(origin):
                return OriginDecision.ALLOWED_STATIC
            if rule.matches(origin):
                return OriginDecision.ALLOWED_REFLECT
        return OriginDecision.DENIED

    def allow_origin_value(self, origin: str | None) -> str | None:
        """The ``Access-Control-Allow-Origin`` value for *origin*, or None."""
        decision = self.origin_decision(origin)
        if not decision.allowed:
            return None
        if decision is OriginDecision.ALLOWED_STATIC and isinstance(self.allowed_origins, AnyMatcher):
            return "*"
        return origin

    def varies_by_origin(self) -> bool:
        """True when responses differ per request origin and need ``Vary: Origin``."""
        return self.vary_origin or not isinstance(self.allowed_origins, AnyMatcher)

    # -- preflight ----------------------------------------------------------

    def preflight_response(
        self,
        method: str | None,
        requested_headers: str | Iterable[str] | None = None,
    ) -> PreflightResponse:
        """Answer a preflight for *method* and the requested header names."""
        token = (method or "").strip()
        if not token:
            return PreflightDenied("missing Access-Control-Request-Method")

        methods_rule = self.allowed_methods
        if isinstance(methods_rule, AnyMatcher):
            methods = frozenset({"*"})
        elif isinstance(methods_rule, MirrorMatcher):
            methods = frozenset({token})
        elif isinstance(methods_rule, ExactMatcher) and methods_rule.matches(token):
            methods = methods_rule.values
        else:
            return PreflightDenied(f"method {token} is not allowed")

        requested = split_header_list(requested_headers)
        headers_rule = self.allowed_headers
        if isinstance(headers_rule, AnyMatcher):
            headers = frozenset({"*"})
        elif isinstance(headers_rule, MirrorMatcher):
            headers = frozenset(requested)
        else:
            rejected = [name for name in requested if not headers_rule.matches(name)]
            if rejected:
                return PreflightDenied(f"headers not allowed: {_render(rejected)}")
            headers = headers_rule.values if isinstance(headers_rule, ExactMatcher) else frozenset()

        return PreflightAllowed(
            methods=methods,
            headers=headers,
            max_age=self.max_age,
            allow_credentials=self.allow_credentials,
            allow_private_network=self.allow_private_network,
        )

    # -- exposed headers ----------------------------------------------------

    def expose_headers(self) -> HeaderRule:
        """The exposed-headers rule; it never depends on the request."""
        return self.exposed_headers

    def expose_headers_value(self) -> str | None:
        """Pre-rendered ``Access-Control-Expose-Headers`` value, or None."""
        return self._expose_value

    # -- header sets for middlewares -----------------------------------------

    def _vary(self, decision: OriginDecision, *extra: str) -> str | None:
        names: list[str] = []
        if decision is OriginDecision.ALLOWED_REFLECT or self.varies_by_origin():
            names.append("Origin")
        names.extend(extra)
        return ", ".join(names) if names else None

    def simple_response_headers(self, origin: str | None) -> dict[str, str] | None:
        """Headers to add to a non-preflight response, or None when denied."""
        decision = self.origin_decision(origin)
        value = self.allow_origin_value(origin)
        if value is None:
            return None
        headers = {ALLOW_ORIGIN: value}
        if self.allow_credentials:
            headers[ALLOW_CREDENTIALS] = "true"
        if self._expose_value is not None:
            headers[EXPOSE_HEADERS] = self._expose_value
        vary = self._vary(decision)
        if vary:
            headers[VARY] = vary
        return headers

    def preflight_response_headers(
        self,
        origin: str | None,
        method: str | None,
        requested_headers: str | Iterable[str] | None = None,
    ) -> dict[str, str] | None:
        """Headers for a preflight response, or None when it must be refused."""
        decision = self.origin_decision(origin)
        value = self.allow_origin_value(origin)
        if value is None:
            return None
        response = self.preflight_response(method, requested_headers)
        if not isinstance(response, PreflightAllowed):
            return None

        headers = {ALLOW_ORIGIN: value, ALLOW_METHODS: _render(response.methods)}
        if response.headers:
            headers[ALLOW_HEADERS] = _render(response.headers)
        if response.allow_credentials:
            headers[ALLOW_CREDENTIALS] = "true"
        if response.max_age is not None:
            headers[MAX_AGE] = str(response.max_age)
        if response.allow_private_network:
            headers[ALLOW_PRIVATE_NETWORK] = "true"

        extra = []
        if isinstance(self.allowed_methods, MirrorMatcher):
            extra.append("Access-Control-Request-Method")
        if isinstance(self.allowed_headers, MirrorMatcher):
            extra.append("Access-Control-Request-Headers")
        vary = self._vary(decision, *extra)
        if vary:
            headers[VARY] = vary
        return headers

    # -- round trip ----------------------------------------------------------

    def to_config(self) -> dict[str, Any]:
        """Re-derive the compact configuration shape of this policy."""
        return {
            "allowed_origins": self.allowed_origins.to_config(),
            "allowed_methods": self.allowed_methods.to_config(),
            "allowed_headers": self.allowed_headers.to_config(),
            "exposed_headers": self.exposed_headers.to_config(),
            "allow_credentials": self.allow_credentials,
            "max_age_seconds": self.max_age,
            "allow_private_network": self.allow_private_network,
            "vary_origin": self.vary_origin,
        }
