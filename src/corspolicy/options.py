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
"""Options controlling how a CORS policy document is loaded."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from corspolicy.core.config import config_properties


@config_properties(prefix="corspolicy.options")
class PolicyOptions(BaseModel):
    """Load options (``corspolicy.options.*``).

    ``unknown_keys``: ``lenient`` ignores unrecognized top-level keys with a
    warning, ``strict`` rejects them with ConfigShapeError.

    ``reflect_wildcards_with_credentials``: when credentials are allowed, a
    ``*`` origin, method or allowed-header rule is rejected unless this is
    on, in which case it is compiled to per-request reflection.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    unknown_keys: Literal["lenient", "strict"] = "lenient"
    reflect_wildcards_with_credentials: bool = Field(default=False)

    @property
    def strict(self) -> bool:
        return self.unknown_keys == "strict"
