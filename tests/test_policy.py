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
"""Tests for the runtime Policy evaluation surface."""

from __future__ import annotations

import dataclasses

import pytest

from corspolicy.compiler import load_policy
from corspolicy.kernel.exceptions import PolicyConflict
from corspolicy.matchers import AnyMatcher, DenyMatcher, ExactMatcher, MirrorMatcher
from corspolicy.options import PolicyOptions
from corspolicy.policy import OriginDecision, Policy, PreflightAllowed, PreflightDenied, split_header_list

REFLECT = PolicyOptions(reflect_wildcards_with_credentials=True)


class TestOriginDecision:
    def test_exact_origins_are_static(self) -> None:
        policy = load_policy({"allowed_origins": ["https://a.test", "https://b.test"]})
        assert policy.origin_decision("https://a.test") is OriginDecision.ALLOWED_STATIC
        assert policy.origin_decision("https://b.test") is OriginDecision.ALLOWED_STATIC
        assert policy.origin_decision("https://c.test") is OriginDecision.DENIED

    def test_pattern_covers_subdomains_only(self) -> None:
        policy = load_policy({"allowed_origins": ["*.example.com"]})
        assert policy.origin_decision("a.example.com") is OriginDecision.ALLOWED_REFLECT
        assert policy.origin_decision("https://a.example.com") is OriginDecision.ALLOWED_REFLECT
        assert policy.origin_decision("example.com") is OriginDecision.DENIED

    def test_bare_domain_listed_separately(self) -> None:
        policy = load_policy({"allowed_origins": ["https://example.com", "https://*.example.com"]})
        assert policy.origin_decision("https://example.com") is OriginDecision.ALLOWED_STATIC
        assert policy.origin_decision("https://api.example.com") is OriginDecision.ALLOWED_REFLECT

    def test_any_without_credentials_is_static_star(self) -> None:
        policy = load_policy({"allowed_origins": "*"})
        assert policy.origin_decision("https://x.test") is OriginDecision.ALLOWED_STATIC
        assert policy.allow_origin_value("https://x.test") == "*"

    def test_empty_list_denies_everything(self) -> None:
        policy = load_policy({"allowed_origins": []})
        assert policy.allowed_origins == DenyMatcher()
        assert policy.origin_decision("https://a.test") is OriginDecision.DENIED

    def test_missing_origin_is_denied(self) -> None:
        policy = load_policy({"allowed_origins": "*"})
        assert policy.origin_decision(None) is OriginDecision.DENIED
        assert policy.origin_decision("") is OriginDecision.DENIED

    def test_mirror_reflects(self) -> None:
        policy = load_policy({"allowed_origins": "mirror"})
        assert policy.origin_decision("https://any.test") is OriginDecision.ALLOWED_REFLECT
        assert policy.allow_origin_value("https://any.test") == "https://any.test"


class TestCredentialsNeverSendStar:
    def test_any_origin_with_credentials_reflects_request_origin(self) -> None:
        policy = load_policy({"allowed_origins": "*", "allow_credentials": True}, REFLECT)
        assert policy.allowed_origins == MirrorMatcher()
        assert policy.reflected == ("allowed_origins",)
        for origin in ("https://a.test", "http://localhost:3000"):
            assert policy.origin_decision(origin) is OriginDecision.ALLOWED_REFLECT
            assert policy.allow_origin_value(origin) == origin
            headers = policy.simple_response_headers(origin)
            assert headers is not None
            assert headers["Access-Control-Allow-Origin"] == origin
            assert headers["Access-Control-Allow-Credentials"] == "true"

    def test_any_headers_with_credentials_mirror_request(self) -> None:
        policy = load_policy(
            {"allowed_origins": ["https://a.test"], "allowed_methods": "*", "allowed_headers": "*",
             "allow_credentials": True},
            REFLECT,
        )
        result = policy.preflight_response("PATCH", "X-One, x-two")
        assert isinstance(result, PreflightAllowed)
        assert result.methods == frozenset({"PATCH"})
        assert result.headers == frozenset({"x-one", "x-two"})
        assert "*" not in result.methods
        assert "*" not in result.headers

    def test_direct_construction_cannot_bypass_validation(self) -> None:
        with pytest.raises(PolicyConflict):
            Policy(allowed_origins=AnyMatcher(), allow_credentials=True)

    def test_direct_construction_rejects_exposed_mirror(self) -> None:
        with pytest.raises(PolicyConflict):
            Policy(exposed_headers=MirrorMatcher())


class TestPreflight:
    def test_end_to_end_example(self) -> None:
        policy = load_policy(
            {
                "allowed_origins": ["https://a.test"],
                "allowed_methods": ["GET", "POST"],
                "allow_credentials": False,
            }
        )
        assert policy.origin_decision("https://a.test") is OriginDecision.ALLOWED_STATIC
        assert policy.origin_decision("https://b.test") is OriginDecision.DENIED

        allowed = policy.preflight_response("POST", [])
        assert isinstance(allowed, PreflightAllowed)
        assert allowed.methods == frozenset({"GET", "POST"})
        assert allowed.headers == frozenset()
        assert allowed.max_age is None

        assert isinstance(policy.preflight_response("DELETE", []), PreflightDenied)

    def test_configured_methods_are_upper_cased(self) -> None:
        policy = load_policy({"allowed_methods": ["post"]})
        assert policy.preflight_response("POST").allowed

    def test_request_method_is_case_sensitive(self) -> None:
        policy = load_policy({"allowed_methods": ["PATCH"]})
        result = policy.preflight_response("patch")
        assert isinstance(result, PreflightDenied)
        assert result.reason == "method patch is not allowed"

    def test_missing_method_denied(self) -> None:
        policy = load_policy({"allowed_methods": "*"})
        result = policy.preflight_response(None)
        assert isinstance(result, PreflightDenied)
        assert "Access-Control-Request-Method" in result.reason

    def test_header_matching_is_case_insensitive(self) -> None:
        policy = load_policy({"allowed_methods": ["GET"], "allowed_headers": ["X-Custom"]})
        result = policy.preflight_response("GET", ["x-custom"])
        assert isinstance(result, PreflightAllowed)
        assert result.headers == frozenset({"x-custom"})

    def test_unlisted_header_denied(self) -> None:
        policy = load_policy({"allowed_methods": ["GET"], "allowed_headers": ["X-Custom"]})
        result = policy.preflight_response("GET", "x-custom, x-other")
        assert isinstance(result, PreflightDenied)
        assert "x-other" in result.reason

    def test_deny_headers_allows_headerless_preflight(self) -> None:
        policy = load_policy({"allowed_methods": ["GET"]})
        assert policy.preflight_response("GET", "").allowed
        assert not policy.preflight_response("GET", "x-custom").allowed

    def test_star_rules_without_credentials(self) -> None:
        policy = load_policy({"allowed_methods": "*", "allowed_headers": "*", "max_age_seconds": "10m"})
        result = policy.preflight_response("PURGE", "x-anything")
        assert isinstance(result, PreflightAllowed)
        assert result.methods == frozenset({"*"})
        assert result.headers == frozenset({"*"})
        assert result.max_age == 600

    def test_private_network_flag_carried(self) -> None:
        policy = load_policy({"allowed_methods": ["GET"], "allow_private_network": True})
        result = policy.preflight_response("GET")
        assert isinstance(result, PreflightAllowed)
        assert result.allow_private_network is True


class TestExposeHeaders:
    def test_rule_and_rendered_value(self) -> None:
        policy = load_policy({"exposed_headers": ["X-Trace-Id", "X-Request-Id"]})
        assert isinstance(policy.expose_headers(), ExactMatcher)
        assert policy.expose_headers_value() == "x-request-id, x-trace-id"

    def test_star_without_credentials(self) -> None:
        assert load_policy({"exposed_headers": "*"}).expose_headers_value() == "*"

    def test_absent_is_not_sent(self) -> None:
        assert load_policy({}).expose_headers_value() is None


class TestResponseHeaders:
    def test_simple_response_headers(self) -> None:
        policy = load_policy(
            {"allowed_origins": ["https://a.test"], "exposed_headers": ["X-Request-Id"], "allow_credentials": True}
        )
        assert policy.simple_response_headers("https://a.test") == {
            "Access-Control-Allow-Origin": "https://a.test",
            "Access-Control-Allow-Credentials": "true",
            "Access-Control-Expose-Headers": "x-request-id",
            "Vary": "Origin",
        }
        assert policy.simple_response_headers("https://evil.test") is None

    def test_star_origin_has_no_vary(self) -> None:
        policy = load_policy({"allowed_origins": "*"})
        assert policy.simple_response_headers("https://a.test") == {"Access-Control-Allow-Origin": "*"}

    def test_vary_origin_flag(self) -> None:
        policy = load_policy({"allowed_origins": "*", "vary_origin": True})
        headers = policy.simple_response_headers("https://a.test")
        assert headers is not None
        assert headers["Vary"] == "Origin"

    def test_preflight_response_headers(self) -> None:
        policy = load_policy(
            {
                "allowed_origins": ["https://a.test"],
                "allowed_methods": ["GET", "POST"],
                "allowed_headers": ["Content-Type"],
                "max_age_seconds": 600,
                "allow_private_network": True,
            }
        )
        headers = policy.preflight_response_headers("https://a.test", "POST", "content-type")
        assert headers == {
            "Access-Control-Allow-Origin": "https://a.test",
            "Access-Control-Allow-Methods": "GET, POST",
            "Access-Control-Allow-Headers": "content-type",
            "Access-Control-Max-Age": "600",
            "Access-Control-Allow-Private-Network": "true",
            "Vary": "Origin",
        }

    def test_preflight_headers_none_when_denied(self) -> None:
        policy = load_policy({"allowed_origins": ["https://a.test"], "allowed_methods": ["GET"]})
        assert policy.preflight_response_headers("https://b.test", "GET") is None
        assert policy.preflight_response_headers("https://a.test", "PUT") is None

    def test_mirror_rules_add_request_headers_to_vary(self) -> None:
        policy = load_policy({"allowed_origins": "mirror", "allowed_methods": "mirror", "allowed_headers": "mirror"})
        headers = policy.preflight_response_headers("https://a.test", "PUT", "x-one")
        assert headers is not None
        assert headers["Vary"] == "Origin, Access-Control-Request-Method, Access-Control-Request-Headers"
        assert headers["Access-Control-Allow-Methods"] == "PUT"
        assert headers["Access-Control-Allow-Headers"] == "x-one"


class TestImmutabilityAndRoundTrip:
    def test_policy_is_frozen(self) -> None:
        policy = load_policy({"allowed_origins": "*"})
        with pytest.raises(dataclasses.FrozenInstanceError):
            policy.allow_credentials = True  # type: ignore[misc]

    def test_star_shapes_compile_to_equal_policies(self) -> None:
        assert load_policy({"allowed_origins": ["*"]}) == load_policy({"allowed_origins": "*"})

    def test_compiling_twice_is_deterministic(self) -> None:
        data = {"allowed_origins": ["https://b.test", "https://a.test", "*.example.com"], "allowed_methods": ["GET"]}
        assert load_policy(data) == load_policy(data)

    def test_to_config_reproduces_semantics(self) -> None:
        data = {
            "allowed_origins": ["https://a.test", "*.example.com"],
            "allowed_methods": ["post", "GET"],
            "allowed_headers": "mirror",
            "exposed_headers": [],
            "allow_credentials": True,
            "max_age_seconds": "1h",
        }
        policy = load_policy(data)
        assert load_policy(policy.to_config()) == policy
        assert policy.to_config()["allowed_methods"] == ["GET", "POST"]
        assert policy.to_config()["max_age_seconds"] == 3600

    def test_reflected_policy_round_trips_to_equal_policy(self) -> None:
        policy = load_policy({"allowed_origins": "*", "allow_credentials": True}, REFLECT)
        reloaded = load_policy(policy.to_config())
        assert policy.reflected == ("allowed_origins",)
        assert reloaded.reflected == ()
        assert reloaded == policy


class TestSplitHeaderList:
    def test_raw_header_value(self) -> None:
        assert split_header_list("X-A, x-b,,X-A ") == ("x-a", "x-b")

    def test_iterable_and_none(self) -> None:
        assert split_header_list(["X-A"]) == ("x-a",)
        assert split_header_list(None) == ()
