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
"""Exception hierarchy for corspolicy.

Every error raised while loading a CORS policy inherits from
CorsPolicyException, so an embedding application can catch one type to
report any configuration problem.

Categories:
- ConfigSourceError: the configuration document could not be read or parsed
- ConfigShapeError: a dimension holds a value of an unrecognized shape
- PolicyConflict: individually valid dimensions contradict each other

Once a Policy is compiled no further exceptions are raised: runtime
evaluation is total.
"""

from __future__ import annotations

from typing import Any

# =============================================================================
# Base Exception
# =============================================================================


class CorsPolicyException(Exception):
    """Base exception for all corspolicy errors.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "CORS_SHAPE").
        context: Arbitrary key-value pairs for diagnostics.
        location: Where the offending value lives ("cors.yaml:12"), if known.
    """

    default_code: str | None = None

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict | None = None,
        location: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.context: dict = context if context is not None else {}
        self.location = location

    def with_location(self, location: str | None) -> CorsPolicyException:
        """Attach a source location, keeping any location already set."""
        if self.location is None:
            self.location = location
        return self

    def __str__(self) -> str:
        if self.location:
            return f"{self.location}: {self.message}"
        return self.message


# =============================================================================
# Load-time Exceptions
# =============================================================================


class ConfigSourceError(CorsPolicyException):
    """The configuration document is missing or cannot be parsed."""

    default_code = "CORS_SOURCE"


class ConfigShapeError(CorsPolicyException):
    """A policy dimension holds a value of an unrecognized shape."""

    default_code = "CORS_SHAPE"

    def __init__(self, dimension: str, reason: str, value: Any = None, location: str | None = None) -> None:
        super().__init__(
            f"invalid '{dimension}': {reason} (got {value!r})",
            context={"dimension": dimension, "value": value},
            location=location,
        )
        self.dimension = dimension
        self.reason = reason
        self.value = value


class PolicyConflict(CorsPolicyException):
    """Two otherwise valid settings contradict the CORS protocol."""

    default_code = "CORS_CONFLICT"

    def __init__(self, rule_a: str, rule_b: str, reason: str, location: str | None = None) -> None:
        super().__init__(
            f"'{rule_a}' conflicts with '{rule_b}': {reason}",
            context={"rule_a": rule_a, "rule_b": rule_b},
            location=location,
        )
        self.rule_a = rule_a
        self.rule_b = rule_b
        self.reason = reason
