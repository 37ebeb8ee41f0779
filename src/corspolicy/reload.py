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
"""Hot reload by whole-object replacement of the live Policy."""

from __future__ import annotations

import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog

from corspolicy.compiler import DEFAULT_SECTION, load_policy, load_policy_file
from corspolicy.options import PolicyOptions
from corspolicy.policy import Policy

logger = structlog.get_logger("corspolicy.reload")


class PolicyReference:
    """Holds the live Policy for a middleware.

    Readers call :attr:`current` and get either the old or the new policy,
    never a mixture. Writers compile the replacement first, so a failed
    reload leaves the live policy untouched and raises the load error.
    """

    def __init__(self, policy: Policy) -> None:
        self._policy = policy
        self._lock = threading.Lock()
        self._generation = 0

    @property
    def current(self) -> Policy:
        return self._policy

    @property
    def generation(self) -> int:
        """Number of successful swaps since creation."""
        return self._generation

    def swap(self, policy: Policy) -> Policy:
        """Publish *policy* and return the one it replaced."""
        with self._lock:
            previous = self._policy
            self._policy = policy
            self._generation += 1
        logger.info("cors_policy_swapped", generation=self._generation, changed=previous != policy)
        return previous

    def reload(self, data: Mapping[str, Any], options: PolicyOptions | None = None) -> Policy:
        """Compile *data* and publish it; returns the new policy."""
        policy = load_policy(data, options)
        self.swap(policy)
        return policy

    def reload_file(
        self,
        path: str | Path,
        section: str = DEFAULT_SECTION,
        options: PolicyOptions | None = None,
    ) -> Policy:
        """Compile the policy in *path* and publish it; returns the new policy."""
        policy = load_policy_file(path, section=section, options=options)
        self.swap(policy)
        return policy
