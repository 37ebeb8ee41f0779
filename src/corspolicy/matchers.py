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
"""Matcher primitives shared by every CORS policy dimension.

Each rule is a closed variant: a frozen dataclass with a ``matches()``
predicate and a ``to_config()`` method that re-derives the compact
configuration shape it was parsed from.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Union

WILDCARD = "*"
MIRROR = "mirror"
DENY = "none"


@dataclass(frozen=True)
class AnyMatcher:
    """Matches every candidate; rendered as a literal ``*``."""

    kind: ClassVar[str] = "any"

    def matches(self, value: str) -> bool:
        return True

    def to_config(self) -> str:
        return WILDCARD


@dataclass(frozen=True)
class DenyMatcher:
    """Matches nothing. The explicit form of an empty list."""

    kind: ClassVar[str] = "deny"

    def matches(self, value: str) -> bool:
        return False

    def to_config(self) -> list[str]:
        return []


@dataclass(frozen=True)
class MirrorMatcher:
    """Matches every candidate and echoes it back instead of a literal."""

    kind: ClassVar[str] = "mirror"

    def matches(self, value: str) -> bool:
        return True

    def to_config(self) -> str:
        return MIRROR


@dataclass(frozen=True)
class ExactMatcher:
    """Set membership. Header names use ``case_insensitive=True``."""

    values: frozenset[str]
    case_insensitive: bool = False
    kind: ClassVar[str] = "exact"

    def __post_init__(self) -> None:
        if not self.values:
            raise ValueError("ExactMatcher needs at least one value; use DenyMatcher for deny-all")
        if self.case_insensitive and any(v != v.lower() for v in self.values):
            object.__setattr__(self, "values", frozenset(v.lower() for v in self.values))

    def matches(self, value: str) -> bool:
        if self.case_insensitive:
            value = value.lower()
        return value in self.values

    def to_config(self) -> list[str]:
        return sorted(self.values)


@dataclass(frozen=True)
class HostPattern:
    """A single-wildcard origin pattern such as ``https://*.example.com``.

    The ``*`` stands for exactly one non-empty host label. Patterns without
    a scheme match the host part of any origin regardless of its scheme.
    """

    prefix: str
    suffix: str
    source: str = field(compare=False)

    @classmethod
    def parse(cls, pattern: str) -> HostPattern:
        """Split *pattern* around its wildcard; raises ValueError when malformed."""
        if pattern.count(WILDCARD) != 1:
            raise ValueError("a pattern must contain exactly one '*'")
        scheme, sep, rest = pattern.rpartition("://")
        if sep and (not scheme or WILDCARD in scheme):
            raise ValueError("the wildcard must be in the host, not the scheme")
        if not rest.startswith("*."):
            raise ValueError("the wildcard must be the whole leftmost host label, as in '*.example.com'")
        host = rest[2:].split(":", 1)[0]
        if not host or "/" in rest or host.startswith(".") or host.endswith("."):
            raise ValueError("the pattern needs a domain after '*.'")
        prefix = f"{scheme}://" if sep else ""
        return cls(prefix=prefix.lower(), suffix=rest[1:].lower(), source=pattern)

    def matches(self, origin: str) -> bool:
        candidate = origin.lower()
        if not self.prefix:
            # scheme-less pattern: compare against the host part only
            candidate = candidate.partition("://")[2] or candidate
        if not (candidate.startswith(self.prefix) and candidate.endswith(self.suffix)):
            return False
        label = candidate[len(self.prefix) : len(candidate) - len(self.suffix)]
        return bool(label) and not any(c in label for c in "./:@")


@dataclass(frozen=True)
class PatternMatcher:
    """Wildcard host patterns plus any exact origins listed beside them."""

    patterns: tuple[HostPattern, ...]
    exact: frozenset[str] = frozenset()
    kind: ClassVar[str] = "pattern"

    def __post_init__(self) -> None:
        if not self.patterns:
            raise ValueError("PatternMatcher needs at least one pattern")
        if any(v != v.lower() for v in self.exact):
            object.__setattr__(self, "exact", frozenset(v.lower() for v in self.exact))

    def matches_exact(self, value: str) -> bool:
        return value.lower() in self.exact

    def matches(self, value: str) -> bool:
        if self.matches_exact(value):
            return True
        return any(p.matches(value) for p in self.patterns)

    def to_config(self) -> list[str]:
        return sorted(self.exact) + sorted(p.source for p in self.patterns)


OriginRule = Union[AnyMatcher, ExactMatcher, PatternMatcher, MirrorMatcher, DenyMatcher]
MethodRule = Union[AnyMatcher, ExactMatcher, MirrorMatcher, DenyMatcher]
HeaderRule = Union[AnyMatcher, ExactMatcher, MirrorMatcher, DenyMatcher]


def describe(rule: Any) -> str:
    """Short human-readable rendering used by logs and the CLI."""
    shape = rule.to_config()
    if isinstance(shape, list):
        return ", ".join(shape) if shape else "(deny all)"
    return shape
