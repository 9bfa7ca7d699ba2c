"""Tests for pinproxy.models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from pinproxy.models import (
    DEFAULT_ALLOWED_METHODS,
    DEFAULT_METHOD_COOLDOWNS,
    AllowedMethods,
    CachedResponse,
    ErrorKind,
    ErrorResult,
    ProxyConfig,
    RequestLog,
)


# ---------------------------------------------------------------------------
# AllowedMethods
# ---------------------------------------------------------------------------


class TestAllowedMethods:
    def test_exact_match(self) -> None:
        policy = AllowedMethods.from_entries(["posts/get", "tags/get"])
        assert policy.permits("posts/get")
        assert not policy.permits("posts/delete")

    def test_prefix_rule(self) -> None:
        policy = AllowedMethods.from_entries(["posts/get", "notes/*"])
        assert policy.prefix == "notes/"
        assert policy.permits("notes/abc123")
        assert policy.permits("notes/list")
        assert not policy.permits("note")

    def test_no_prefix_rule_rejects_everything_else(self) -> None:
        policy = AllowedMethods.from_entries(["posts/get"])
        assert policy.prefix is None
        assert not policy.permits("")
        assert not policy.permits("posts/getx")

    def test_empty_list_permits_nothing(self) -> None:
        policy = AllowedMethods.from_entries([])
        assert not policy.permits("posts/get")

    def test_default_list(self) -> None:
        policy = AllowedMethods.from_entries(DEFAULT_ALLOWED_METHODS)
        assert policy.permits("posts/recent")
        assert policy.permits("notes/0123456789abcdef")
        assert not policy.permits("posts/add")
        assert not policy.permits("posts/delete")


# ---------------------------------------------------------------------------
# ProxyConfig
# ---------------------------------------------------------------------------


class TestProxyConfig:
    def test_defaults(self) -> None:
        config = ProxyConfig()
        assert config.endpoint == "https://api.pinboard.in/v1/"
        assert config.method_cooldowns == DEFAULT_METHOD_COOLDOWNS
        assert config.cache_duration == 0
        assert config.token_source == "env:PINBOARD_API_TOKEN"

    def test_defaults_are_not_shared(self) -> None:
        a = ProxyConfig()
        a.method_cooldowns["tags/get"] = 10
        assert "tags/get" not in ProxyConfig().method_cooldowns

    def test_cooldowns_require_global(self) -> None:
        with pytest.raises(ValidationError, match="global"):
            ProxyConfig(method_cooldowns={"posts/all": 300})

    def test_negative_cooldown_rejected(self) -> None:
        with pytest.raises(ValidationError, match="negative"):
            ProxyConfig(method_cooldowns={"global": 3, "posts/all": -1})

    def test_multiple_prefix_rules_rejected(self) -> None:
        with pytest.raises(ValidationError, match="one prefix rule"):
            ProxyConfig(allowed_methods=["notes/*", "posts/*"])

    def test_cache_duration_zero_stays_disabled(self) -> None:
        assert ProxyConfig(cache_duration=0).effective_cache_duration == 0

    def test_negative_cache_duration_disables(self) -> None:
        assert ProxyConfig(cache_duration=-5).effective_cache_duration == 0

    def test_cache_duration_clamped_to_longest_cooldown(self) -> None:
        config = ProxyConfig(cache_duration=10)
        assert config.effective_cache_duration == 300
        assert config.cache_duration == 10

    def test_clamp_not_persisted_in_dump(self) -> None:
        config = ProxyConfig(cache_duration=10)
        assert config.model_dump()["cache_duration"] == 10
        assert ProxyConfig.model_validate(config.model_dump()) == config

    def test_clamp_tracks_cooldown_table(self) -> None:
        config = ProxyConfig(cache_duration=10, method_cooldowns={"global": 3})
        assert config.effective_cache_duration == 10

    def test_cache_duration_above_cooldowns_kept(self) -> None:
        assert ProxyConfig(cache_duration=900).effective_cache_duration == 900

    def test_cooldown_categories_exclude_global(self) -> None:
        assert ProxyConfig().cooldown_categories == ["posts/recent", "posts/all"]

    def test_allowed_property(self) -> None:
        config = ProxyConfig(allowed_methods=["posts/get"])
        assert config.allowed.permits("posts/get")
        assert not config.allowed.permits("tags/get")


# ---------------------------------------------------------------------------
# CachedResponse
# ---------------------------------------------------------------------------


class TestCachedResponse:
    def test_as_dict_merges_object_body(self) -> None:
        response = CachedResponse(body={"posts": []}, http_code=200, request_time=10)
        assert response.as_dict() == {"posts": [], "http_code": 200, "request_time": 10}

    def test_as_dict_nests_list_body(self) -> None:
        response = CachedResponse(body=[1, 2], http_code=200, request_time=10)
        assert response.as_dict() == {"body": [1, 2], "http_code": 200, "request_time": 10}

    def test_as_dict_without_body(self) -> None:
        response = CachedResponse(http_code=0, request_time=10)
        assert response.as_dict() == {"http_code": 0, "request_time": 10}

    def test_too_many_requests(self) -> None:
        assert CachedResponse(http_code=429).is_too_many_requests
        assert not CachedResponse(http_code=200).is_too_many_requests


# ---------------------------------------------------------------------------
# RequestLog
# ---------------------------------------------------------------------------


class TestRequestLog:
    def test_from_document(self) -> None:
        log = RequestLog.from_document(
            {"last-global": 100, "last-posts/all": 50, "last_request_hash": "abc"}
        )
        assert log.last("global") == 100
        assert log.last("posts/all") == 50
        assert log.last_request_hash == "abc"

    def test_from_empty_document_defaults_global(self) -> None:
        log = RequestLog.from_document({})
        assert log.timestamps == {"global": 0}
        assert log.last_request_hash is None

    def test_non_integer_timestamp_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RequestLog.from_document({"last-global": "garbage"})

    def test_unknown_category_is_zero(self) -> None:
        assert RequestLog().last("tags/get") == 0

    def test_to_document(self) -> None:
        log = RequestLog.from_document({"last-global": 0})
        log.touch("global", 42)
        log.touch("posts/recent", 42)
        log.last_request_hash = "f00"
        assert log.to_document() == {
            "last-global": 42,
            "last-posts/recent": 42,
            "last_request_hash": "f00",
        }

    def test_to_document_omits_missing_hash(self) -> None:
        assert "last_request_hash" not in RequestLog().to_document()


# ---------------------------------------------------------------------------
# ErrorResult
# ---------------------------------------------------------------------------


class TestErrorResult:
    def test_method_not_allowed(self) -> None:
        result = ErrorResult.method_not_allowed("posts/delete")
        assert result.kind == ErrorKind.METHOD_NOT_ALLOWED
        assert result.error_text == "The method “posts/delete” is not permitted."
        assert "<code>posts/delete</code>" in result.error_html
        assert result.error_html.startswith("<p style='color: red; font-weight: bold;'>")

    def test_method_not_allowed_escapes_html(self) -> None:
        result = ErrorResult.method_not_allowed("<script>")
        assert "<script>" not in result.error_html
        assert "&lt;script&gt;" in result.error_html

    def test_rate_limited(self) -> None:
        result = ErrorResult.rate_limited()
        assert result.kind == ErrorKind.RATE_LIMITED
        assert result.error_text == "Too many requests. Wait a bit, then try again."
        assert result.error_text in result.error_html

    def test_as_dict(self) -> None:
        data = ErrorResult.rate_limited().as_dict()
        assert set(data) == {"error-text", "error-html"}
