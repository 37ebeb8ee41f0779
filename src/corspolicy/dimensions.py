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
"""Policy dimension configs: compact configuration shapes parsed into rules.

Accepted shapes per dimension:

=====================  ==========================================================
allowed_origins        ``"*"``, ``"mirror"``, ``"none"``, or a list of origins
                       and ``*.domain`` patterns
allowed_methods        ``"*"``, ``"mirror"``, ``"none"``, or a list of tokens
allowed_headers        ``"*"``, ``"mirror"``, ``"none"``, or a list of names
exposed_headers        same as allowed_headers
allow_credentials      boolean
allow_private_network  boolean
vary_origin            boolean
max_age_seconds        integer seconds, a duration such as ``"1h 30min"``, or absent
=====================  ==========================================================

An empty list and ``"none"`` both mean deny-all. A missing list dimension is
deny-all too.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import structlog

from corspolicy.kernel.exceptions import ConfigShapeError
from corspolicy.matchers import (
    DENY,
    MIRROR,
    WILDCARD,
    AnyMatcher,
    DenyMatcher,
    ExactMatcher,
    HeaderRule,
    HostPattern,
    MethodRule,
    MirrorMatcher,
    OriginRule,
    PatternMatcher,
)
from corspolicy.options import PolicyOptions

logger = structlog.get_logger("corspolicy.dimensions")

ALLOWED_ORIGINS = "allowed_origins"
ALLOWED_METHODS = "allowed_methods"
ALLOWED_HEADERS = "allowed_headers"
EXPOSED_HEADERS = "exposed_headers"
ALLOW_CREDENTIALS = "allow_credentials"
MAX_AGE_SECONDS = "max_age_seconds"
ALLOW_PRIVATE_NETWORK = "allow_private_network"
VARY_ORIGIN = "vary_origin"

DIMENSIONS = (
    ALLOWED_ORIGINS,
    ALLOWED_METHODS,
    ALLOWED_HEADERS,
    EXPOSED_HEADERS,
    ALLOW_CREDENTIALS,
    MAX_AGE_SECONDS,
    ALLOW_PRIVATE_NETWORK,
    VARY_ORIGIN,
)

_ALIASES = {
    "max_age": MAX_AGE_SECONDS,
    "expose_headers": EXPOSED_HEADERS,
}

# RFC 9110 token characters
_TOKEN_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")
_ORIGIN_RE = re.compile(r"^[a-z][a-z0-9+.\-]*://[^/\s?#]+$")

_DURATION_UNITS = {
    **dict.fromkeys(("s", "sec", "secs", "second", "seconds"), 1),
    **dict.fromkeys(("m", "min", "mins", "minute", "minutes"), 60),
    **dict.fromkeys(("h", "hr", "hrs", "hour", "hours"), 3600),
    **dict.fromkeys(("d", "day", "days"), 86400),
    **dict.fromkeys(("w", "week", "weeks"), 604800),
}
# longest spelling first; a unit must end its word, so '10ms' is not '10m' + 's'
_DURATION_PART_RE = re.compile(
    r"(?P<value>\d+)\s*(?P<unit>{})(?![a-z])".format(
        "|".join(sorted(_DURATION_UNITS, key=len, reverse=True))
    ),
    re.IGNORECASE,
)

_TRUE = ("true", "yes", "on", "1")
_FALSE = ("false", "no", "off", "0")


def _literal(value: Any) -> str | None:
    """Return the keyword a bare string stands for ('*', 'mirror', 'none')."""
    if not isinstance(value, str):
        return None
    word = value.strip().lower()
    return word if word in (WILDCARD, MIRROR, DENY) else None


def _entries(dimension: str, value: Any) -> list[str]:
    if not isinstance(value, (list, tuple)):
        raise ConfigShapeError(
            dimension, f"expected '{WILDCARD}', '{MIRROR}', '{DENY}' or a list of strings", value
        )
    entries: list[str] = []
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise ConfigShapeError(dimension, "list entries must be non-empty strings", item)
        entries.append(item.strip())
    return entries


def _has_wildcard_entry(dimension: str, entries: list[str]) -> bool:
    if WILDCARD not in entries:
        return False
    if len(entries) > 1:
        logger.warning("cors_wildcard_shadows_entries", dimension=dimension, entries=entries)
    return True


def parse_origins(value: Any) -> OriginRule:
    """Parse ``allowed_origins``.

    Exact origins and ``*.domain`` patterns may be mixed; exact literals are
    checked before patterns.
    """
    literal = _literal(value)
    if literal == WILDCARD:
        return AnyMatcher()
    if literal == MIRROR:
        return MirrorMatcher()
    if literal == DENY:
        return DenyMatcher()

    entries = _entries(ALLOWED_ORIGINS, value)
    if not entries:
        return DenyMatcher()
    if _has_wildcard_entry(ALLOWED_ORIGINS, entries):
        return AnyMatcher()

    exact: set[str] = set()
    patterns: list[HostPattern] = []
    for entry in entries:
        if WILDCARD in entry:
            try:
                patterns.append(HostPattern.parse(entry))
            except ValueError as exc:
                raise ConfigShapeError(ALLOWED_ORIGINS, str(exc), entry) from exc
            continue
        origin = entry.lower()
        if origin != "null" and not _ORIGIN_RE.match(origin):
            raise ConfigShapeError(
                ALLOWED_ORIGINS, "origins look like 'scheme://host[:port]' with no path or trailing slash", entry
            )
        exact.add(origin)

    if patterns:
        unique = tuple(sorted(dict.fromkeys(patterns), key=lambda p: p.source))
        return PatternMatcher(patterns=unique, exact=frozenset(exact))
    return ExactMatcher(frozenset(exact), case_insensitive=True)


def parse_methods(value: Any) -> MethodRule:
    """Parse ``allowed_methods``; tokens are upper-cased."""
    literal = _literal(value)
    if literal == WILDCARD:
        return AnyMatcher()
    if literal == MIRROR:
        return MirrorMatcher()
    if literal == DENY:
        return DenyMatcher()

    entries = _entries(ALLOWED_METHODS, value)
    if not entries:
        return DenyMatcher()
    if _has_wildcard_entry(ALLOWED_METHODS, entries):
        return AnyMatcher()
    for entry in entries:
        if not _TOKEN_RE.match(entry):
            raise ConfigShapeError(ALLOWED_METHODS, "not a valid HTTP method token", entry)
    return ExactMatcher(frozenset(e.upper() for e in entries))


def _parse_headers(dimension: str, value: Any) -> HeaderRule:
    literal = _literal(value)
    if literal == WILDCARD:
        return AnyMatcher()
    if literal == MIRROR:
        return MirrorMatcher()
    if literal == DENY:
        return DenyMatcher()

    entries = _entries(dimension, value)
    if not entries:
        return DenyMatcher()
    if _has_wildcard_entry(dimension, entries):
        return AnyMatcher()
    for entry in entries:
        if not _TOKEN_RE.match(entry):
            raise ConfigShapeError(dimension, "not a valid header name", entry)
    return ExactMatcher(frozenset(e.lower() for e in entries), case_insensitive=True)


def parse_allowed_headers(value: Any) -> HeaderRule:
    """Parse ``allowed_headers``; names are stored lower-cased."""
    return _parse_headers(ALLOWED_HEADERS, value)


def parse_exposed_headers(value: Any) -> HeaderRule:
    """Parse ``exposed_headers``. ``"mirror"`` parses here and is rejected by the validator."""
    return _parse_headers(EXPOSED_HEADERS, value)


def parse_flag(dimension: str, value: Any) -> bool:
    """Parse a boolean flag.

    Strings from env placeholders are accepted, and so are the integers
    0 and 1, matching the strings ``"0"`` and ``"1"``.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE:
            return True
        if word in _FALSE:
            return False
    raise ConfigShapeError(dimension, "expected a boolean", value)


def parse_max_age(value: Any) -> int | None:
    """Parse ``max_age_seconds``: integer seconds, a duration string, or None.

    Negative integers are returned as-is so the validator can reject them
    explicitly.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConfigShapeError(MAX_AGE_SECONDS, "expected an integer number of seconds", value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if re.fullmatch(r"-?\d+", text):
            return int(text)
        total = 0
        pos = 0
        for match in _DURATION_PART_RE.finditer(text):
            if text[pos : match.start()].strip():
                break
            total += int(match.group("value")) * _DURATION_UNITS[match.group("unit").lower()]
            pos = match.end()
        else:
            if pos and not text[pos:].strip():
                return total
    raise ConfigShapeError(MAX_AGE_SECONDS, "expected seconds or a duration such as '10m', '30min' or '1h 30m'", value)


@dataclass(frozen=True)
class PolicyDocument:
    """All dimensions of one CORS policy, parsed but not yet validated."""

    allowed_origins: OriginRule = field(default_factory=DenyMatcher)
    allowed_methods: MethodRule = field(default_factory=DenyMatcher)
    allowed_headers: HeaderRule = field(default_factory=DenyMatcher)
    exposed_headers: HeaderRule = field(default_factory=DenyMatcher)
    allow_credentials: bool = False
    max_age_seconds: int | None = None
    allow_private_network: bool = False
    vary_origin: bool = False
    locations: Mapping[str, str] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_mapping(
        cls,
        data: Any,
        options: PolicyOptions | None = None,
        locate: Callable[[str], str | None] | None = None,
    ) -> PolicyDocument:
        """Parse every dimension of *data*, failing on the first bad shape.

        *locate* maps a configuration key to a source location for diagnostics.
        """
        options = options or PolicyOptions()
        locate = locate or (lambda key: None)

        if not isinstance(data, Mapping):
            raise ConfigShapeError("<document>", "a CORS policy must be a mapping", data)

        raw: dict[str, Any] = {}
        locations: dict[str, str] = {}
        for key, value in data.items():
            name = str(key).replace("-", "_")
            name = _ALIASES.get(name, name)
            if name not in DIMENSIONS:
                if options.strict:
                    raise ConfigShapeError(str(key), "unknown key", value, location=locate(str(key)))
                logger.warning("cors_unknown_key_ignored", key=str(key), location=locate(str(key)))
                continue
            if name in raw:
                raise ConfigShapeError(name, "given more than once", value, location=locate(str(key)))
            raw[name] = value
            location = locate(str(key))
            if location:
                locations[name] = location

        parsers: dict[str, Callable[[Any], Any]] = {
            ALLOWED_ORIGINS: parse_origins,
            ALLOWED_METHODS: parse_methods,
            ALLOWED_HEADERS: parse_allowed_headers,
            EXPOSED_HEADERS: parse_exposed_headers,
            ALLOW_CREDENTIALS: lambda v: parse_flag(ALLOW_CREDENTIALS, v),
            MAX_AGE_SECONDS: parse_max_age,
            ALLOW_PRIVATE_NETWORK: lambda v: parse_flag(ALLOW_PRIVATE_NETWORK, v),
            VARY_ORIGIN: lambda v: parse_flag(VARY_ORIGIN, v),
        }
        kwargs: dict[str, Any] = {}
        for name, value in raw.items():
            try:
                kwargs[name] = parsers[name](value)
            except ConfigShapeError as exc:
                raise exc.with_location(locations.get(name))

        return cls(**kwargs, locations=locations)

    def to_mapping(self) -> dict[str, Any]:
        """Re-derive the compact configuration shape of this document."""
        return {
            ALLOWED_ORIGINS: self.allowed_origins.to_config(),
            ALLOWED_METHODS: self.allowed_methods.to_config(),
            ALLOWED_HEADERS: self.allowed_headers.to_config(),
            EXPOSED_HEADERS: self.exposed_headers.to_config(),
            ALLOW_CREDENTIALS: self.allow_credentials,
            MAX_AGE_SECONDS: self.max_age_seconds,
            ALLOW_PRIVATE_NETWORK: self.allow_private_network,
            VARY_ORIGIN: self.vary_origin,
        }
