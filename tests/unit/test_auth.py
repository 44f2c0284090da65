"""Tests for promptgate.auth — bearer extraction and the master-key check."""

import pytest

from promptgate.auth import check_api_key, extract_bearer
from promptgate.errors import InvalidApiKey, Unauthorized


class TestExtractBearer:
    def test_bearer_token(self) -> None:
        assert extract_bearer({"Authorization": "Bearer sk-abc123xyz"}) == "sk-abc123xyz"

    def test_lowercase_header_name(self) -> None:
        assert extract_bearer({"authorization": "Bearer sk-abc"}) == "sk-abc"

    def test_scheme_is_case_sensitive(self) -> None:
        assert extract_bearer({"Authorization": "bearer sk-abc"}) is None

    def test_unknown_scheme(self) -> None:
        assert extract_bearer({"Authorization": "Basic dXNlcjpwYXNz"}) is None

    def test_missing(self) -> None:
        assert extract_bearer({}) is None

    def test_empty_bearer(self) -> None:
        assert extract_bearer({"Authorization": "Bearer "}) == ""


class TestCheckApiKey:
    def test_disabled_accepts_anything(self) -> None:
        check_api_key({}, None)
        check_api_key({"Authorization": "Bearer whatever"}, None)

    def test_correct_key(self) -> None:
        check_api_key({"Authorization": "Bearer sk-master"}, "sk-master")

    def test_missing_header_is_401(self) -> None:
        with pytest.raises(Unauthorized) as exc_info:
            check_api_key({}, "sk-master")
        assert exc_info.value.status == 401

    def test_malformed_header_is_401(self) -> None:
        with pytest.raises(Unauthorized):
            check_api_key({"Authorization": "sk-master"}, "sk-master")

    def test_wrong_key_is_403(self) -> None:
        with pytest.raises(InvalidApiKey) as exc_info:
            check_api_key({"Authorization": "Bearer sk-other"}, "sk-master")
        assert exc_info.value.status == 403
        assert exc_info.value.code == "invalid_api_key"

    def test_key_one_is_a_real_key(self) -> None:
        check_api_key({"Authorization": "Bearer 1"}, "1")
        with pytest.raises(InvalidApiKey):
            check_api_key({"Authorization": "Bearer 2"}, "1")

    def test_empty_token_is_403(self) -> None:
        with pytest.raises(InvalidApiKey):
            check_api_key({"Authorization": "Bearer "}, "sk-master")
