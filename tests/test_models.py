"""Tests for the shared Pydantic models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from socialkit.exceptions import ConfigurationError
from socialkit.models import (
    DEFAULT_REDIRECT_URL,
    Account,
    AuthProtocol,
    Item,
    Limits,
    ServiceConfig,
)


class TestAccount:
    def _account(self, **properties: str) -> Account:
        return Account(
            id="jane",
            properties=properties,
            service_identifier="example",
            protocol=AuthProtocol.OAUTH2,
        )

    def test_frozen(self) -> None:
        account = self._account(access_token="t")
        with pytest.raises(ValidationError):
            account.id = "joe"  # type: ignore[misc]

    def test_renewed_merges_and_keeps_id(self) -> None:
        account = self._account(access_token="old", refresh_token="r", username="Jane")
        renewed = account.renewed({"access_token": "new"})

        assert renewed.id == "jane"
        assert renewed.properties == {"access_token": "new", "refresh_token": "r", "username": "Jane"}
        assert account.properties["access_token"] == "old"

    def test_username(self) -> None:
        assert self._account(username="Jane D.").username == "Jane D."
        assert self._account().username == "jane"

    @pytest.mark.parametrize(
        ("expires_at", "expired"),
        [("999", True), ("1000", True), ("1001", False), ("", False), ("soon", False)],
    )
    def test_is_expired(self, expires_at: str, expired: bool) -> None:
        assert self._account(expires_at=expires_at).is_expired(now=1000.0) is expired

    def test_without_expiry_never_expires(self) -> None:
        assert self._account(access_token="t").is_expired() is False

    def test_protocol_from_string(self) -> None:
        account = Account.model_validate(
            {"id": "x", "service_identifier": "s", "protocol": "oauth1"}
        )
        assert account.protocol is AuthProtocol.OAUTH1
        assert account.properties == {}


class TestServiceConfig:
    def test_defaults(self) -> None:
        config = ServiceConfig(service_id="s", protocol="oauth2")
        assert config.redirect_url == DEFAULT_REDIRECT_URL
        assert config.token_placement == "header"
        assert config.allow_login_ui is True
        assert config.scopes == []
        assert config.limits == Limits()

    def test_scopes_split(self, oauth2_config: ServiceConfig) -> None:
        assert oauth2_config.scopes == ["read", "write"]

    def test_with_scopes_joins(self, oauth2_config: ServiceConfig) -> None:
        updated = oauth2_config.with_scopes(["email", "public_profile"])
        assert updated.scope == "email,public_profile"
        assert updated.scopes == ["email", "public_profile"]
        assert oauth2_config.scope == "read,write"

    def test_with_scopes_rejects_separator(self, oauth2_config: ServiceConfig) -> None:
        with pytest.raises(ConfigurationError, match="must not contain"):
            oauth2_config.with_scopes(["read", "write,admin"])

    def test_extra_keys_survive(self) -> None:
        config = ServiceConfig.model_validate(
            {"service_id": "s", "protocol": "oauth2", "api_version": "v19.0"}
        )
        assert config.model_dump()["api_version"] == "v19.0"

    def test_unknown_protocol_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ServiceConfig(service_id="s", protocol="basic")

    @pytest.mark.parametrize("placement", ["Query", "body", ""])
    def test_unknown_token_placement_rejected(self, placement: str) -> None:
        with pytest.raises(ValidationError):
            ServiceConfig(service_id="s", protocol="oauth2", token_placement=placement)

    def test_query_token_placement_accepted(self) -> None:
        assert ServiceConfig(service_id="s", protocol="oauth2", token_placement="query").token_placement == "query"


class TestLimits:
    def test_unbounded_by_default(self) -> None:
        item = Item(text="x" * 10_000, links=["l"] * 50)
        assert Limits().violations(item) == []

    def test_every_violation_reported(self) -> None:
        limits = Limits(max_text_length=5, max_links=1, max_files=1)
        item = Item(text="toolong", links=["a", "b"])
        assert limits.violations(item) == [
            "text length 7 exceeds the limit of 5",
            "links 2 exceeds the limit of 1",
        ]

    def test_at_limit_is_fine(self) -> None:
        assert Limits(max_text_length=3).violations(Item(text="abc")) == []

    def test_limits_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            Limits(max_images=0)
