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
"""Declarative, validated CORS policies for HTTP middleware."""

from corspolicy.compiler import compile_policy, load_policy, load_policy_config, load_policy_file
from corspolicy.dimensions import PolicyDocument
from corspolicy.kernel.exceptions import (
    ConfigShapeError,
    ConfigSourceError,
    CorsPolicyException,
    PolicyConflict,
)
from corspolicy.matchers import (
    AnyMatcher,
    DenyMatcher,
    ExactMatcher,
    HostPattern,
    MirrorMatcher,
    PatternMatcher,
)
from corspolicy.options import PolicyOptions
from corspolicy.policy import OriginDecision, Policy, PreflightAllowed, PreflightDenied
from corspolicy.reload import PolicyReference

__version__ = "0.1.0"

__all__ = [
    "AnyMatcher",
    "ConfigShapeError",
    "ConfigSourceError",
    "CorsPolicyException",
    "DenyMatcher",
    "ExactMatcher",
    "HostPattern",
    "MirrorMatcher",
    "OriginDecision",
    "PatternMatcher",
    "Policy",
    "PolicyConflict",
    "PolicyDocument",
    "PolicyOptions",
    "PolicyReference",
    "PreflightAllowed",
    "PreflightDenied",
    "__version__",
    "compile_policy",
    "load_policy",
    "load_policy_config",
    "load_policy_file",
]
