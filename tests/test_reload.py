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
"""Tests for atomic policy replacement."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from corspolicy.compiler import load_policy
from corspolicy.kernel.exceptions import PolicyConflict
from corspolicy.policy import OriginDecision
from corspolicy.reload import PolicyReference


class TestPolicyReference:
    def test_current_returns_initial_policy(self) -> None:
        policy = load_policy({"allowed_origins": ["https://a.test"]})
        ref = PolicyReference(policy)
        assert ref.current is policy
        assert ref.generation == 0

    def test_swap_publishes_whole_object(self) -> None:
        old = load_policy({"allowed_origins": ["https://a.test"]})
        new = load_policy({"allowed_origins": ["https://b.test"]})
        ref = PolicyReference(old)

        previous = ref.swap(new)

        assert previous is old
        assert ref.current is new
        assert ref.generation == 1
        # the replaced policy is untouched
        assert old.origin_decision("https://a.test") is OriginDecision.ALLOWED_STATIC

    def test_reload_from_mapping(self) -> None:
        ref = PolicyReference(load_policy({}))
        policy = ref.reload({"allowed_origins": "*"})
        assert ref.current is policy
        assert ref.current.origin_decision("https://x.test") is OriginDecision.ALLOWED_STATIC

    def test_failed_reload_keeps_live_policy(self) -> None:
        live = load_policy({"allowed_origins": ["https://a.test"]})
        ref = PolicyReference(live)
        with pytest.raises(PolicyConflict):
            ref.reload({"allowed_origins": "*", "allow_credentials": True})
        assert ref.current is live
        assert ref.generation == 0

    def test_reload_file(self, tmp_path: Path) -> None:
        path = tmp_path / "cors.yaml"
        path.write_text("cors:\n  allowed_origins: ['https://file.test']\n")
        ref = PolicyReference(load_policy({}))
        ref.reload_file(path)
        assert ref.current.origin_decision("https://file.test") is OriginDecision.ALLOWED_STATIC

    def test_concurrent_readers_see_whole_policies(self) -> None:
        a = load_policy({"allowed_origins": ["https://a.test"], "allowed_methods": ["GET"]})
        b = load_policy({"allowed_origins": ["https://b.test"], "allowed_methods": ["PUT"]})
        ref = PolicyReference(a)
        mixed: list[str] = []
        stop = threading.Event()

        def reader() -> None:
            while not stop.is_set():
                policy = ref.current
                origin_a = policy.origin_decision("https://a.test").allowed
                method_get = policy.preflight_response("GET").allowed
                if origin_a != method_get:
                    mixed.append("mixed")

        threads = [threading.Thread(target=reader) for _ in range(4)]
        for t in threads:
            t.start()
        for i in range(200):
            ref.swap(b if i % 2 == 0 else a)
        stop.set()
        for t in threads:
            t.join()

        assert mixed == []
        assert ref.generation == 200
