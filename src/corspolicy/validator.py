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
"""Cross-dimension consistency checks for a parsed PolicyDocument."""

from __future__ import annotations

from corspolicy.dimensions import (
    ALLOW_CREDENTIALS,
    ALLOWED_HEADERS,
    ALLOWED_METHODS,
    ALLOWED_ORIGINS,
    EXPOSED_HEADERS,
    MAX_AGE_SECONDS,
    PolicyDocument,
)
from corspolicy.kernel.exceptions import PolicyConflict
from corspolicy.matchers import MIRROR, AnyMatcher, MirrorMatcher
from corspolicy.options import PolicyOptions

_WILDCARD_WITH_CREDENTIALS = (
    "browsers refuse a literal '*' when credentials are allowed; list the values explicitly "
    "or enable reflect_wildcards_with_credentials to echo the request instead"
)


def validate(document: PolicyDocument, options: PolicyOptions | None = None) -> tuple[str, ...]:
    """Check *document* and return the dimensions that must be reflected.

    Rules, checked in order (the first violation raises PolicyConflict):

    1. credentials + ``*`` origins
    2. credentials + ``*`` allowed headers or methods
    3. exposed headers set to ``mirror``
    4. credentials + ``*`` exposed headers
    5. negative max-age

    Rules 1 and 2 pass when ``reflect_wildcards_with_credentials`` is on;
    the names of the affected dimensions are returned so the compiler can
    turn them into per-request reflection.
    """
    options = options or PolicyOptions()
    reflected: list[str] = []

    def conflict(rule_a: str, rule_b: str, reason: str) -> PolicyConflict:
        return PolicyConflict(rule_a, rule_b, reason, location=document.locations.get(rule_a))

    if document.allow_credentials:
        for dimension in (ALLOWED_ORIGINS, ALLOWED_HEADERS, ALLOWED_METHODS):
            if not isinstance(getattr(document, dimension), AnyMatcher):
                continue
            if not options.reflect_wildcards_with_credentials:
                raise conflict(dimension, ALLOW_CREDENTIALS, _WILDCARD_WITH_CREDENTIALS)
            reflected.append(dimension)

    if isinstance(document.exposed_headers, MirrorMatcher):
        raise conflict(
            EXPOSED_HEADERS,
            MIRROR,
            "exposed headers describe the response, so there is no request value to mirror",
        )

    if document.allow_credentials and isinstance(document.exposed_headers, AnyMatcher):
        raise conflict(
            EXPOSED_HEADERS,
            ALLOW_CREDENTIALS,
            "with credentials browsers read '*' as a header literally named '*'; list the headers to expose",
        )

    if document.max_age_seconds is not None and document.max_age_seconds < 0:
        raise conflict(MAX_AGE_SECONDS, "non_negative", f"max-age must be >= 0, got {document.max_age_seconds}")

    return tuple(reflected)
