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
"""Compile policy documents into immutable Policy objects."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from pathlib import Path
from typing import Any

import structlog

from corspolicy.core.config import Config
from corspolicy.dimensions import PolicyDocument
from corspolicy.kernel.exceptions import ConfigShapeError
from corspolicy.matchers import MirrorMatcher, describe
from corspolicy.options import PolicyOptions
from corspolicy.policy import Policy
from corspolicy.validator import validate

logger = structlog.get_logger("corspolicy.compiler")

DEFAULT_SECTION = "cors"


def compile_policy(document: PolicyDocument, options: PolicyOptions | None = None) -> Policy:
    """Validate *document* and build the runtime Policy.

    With ``reflect_wildcards_with_credentials`` on, every ``*`` rule that
    clashes with credentials becomes a mirror rule, and the change is
    logged and recorded in ``Policy.reflected``.
    """
    options = options or PolicyOptions()
    reflected = validate(document, options)

    if reflected:
        document = replace(document, **{name: MirrorMatcher() for name in reflected})
        for name in reflected:
            logger.warning(
                "cors_wildcard_reflected",
                dimension=name,
                reason="credentials are allowed, so '*' is echoed per request",
                location=document.locations.get(name),
            )

    policy = Policy(
        allowed_origins=document.allowed_origins,
        allowed_methods=document.allowed_methods,
        allowed_headers=document.allowed_headers,
        exposed_headers=document.exposed_headers,
        allow_credentials=document.allow_credentials,
        max_age=document.max_age_seconds,
        allow_private_network=document.allow_private_network,
        vary_origin=document.vary_origin,
        reflected=reflected,
    )
    logger.debug(
        "cors_policy_compiled",
        origins=describe(policy.allowed_origins),
        methods=describe(policy.allowed_methods),
        credentials=policy.allow_credentials,
    )
    return policy


def load_policy(data: Mapping[str, Any], options: PolicyOptions | None = None) -> Policy:
    """Parse, validate and compile a configuration mapping in one step."""
    return compile_policy(PolicyDocument.from_mapping(data, options), options)


def load_policy_config(
    config: Config,
    section: str = DEFAULT_SECTION,
    options: PolicyOptions | None = None,
) -> Policy:
    """Compile the policy under *section* of a loaded Config.

    Load options come from ``corspolicy.options`` in the same configuration
    unless *options* is given. An empty *section* reads the policy keys from
    the top level of the document.
    """
    if options is None:
        options = config.bind(PolicyOptions)
    if not section or not config.has(section):
        # no such section: read policy keys from the top level
        section = ""
        data = {k: v for k, v in config.get_section("").items() if k != "corspolicy"}
    else:
        raw = config.get(section)
        if not isinstance(raw, Mapping):
            # present but null or a scalar: never fall back to the top level
            parent, _, leaf = section.rpartition(".")
            raise ConfigShapeError(
                section, "the policy section must be a mapping", raw, location=config.location_of(parent, leaf)
            )
        data = config.get_section(section)

    document = PolicyDocument.from_mapping(
        data,
        options,
        locate=lambda key: config.location_of(section, key),
    )
    return compile_policy(document, options)


def load_policy_file(
    path: str | Path,
    section: str = DEFAULT_SECTION,
    options: PolicyOptions | None = None,
    active_profiles: list[str] | None = None,
) -> Policy:
    """Load a YAML, TOML or JSON file and compile the policy it describes."""
    config = Config.from_file(path, active_profiles=active_profiles)
    return load_policy_config(config, section=section, options=options)
