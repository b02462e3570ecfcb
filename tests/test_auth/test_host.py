"""Tests for host-managed accounts and the platform backend boundary."""

from __future__ import annotations

import logging

import pytest

from socialkit.auth.host import HostManagedAuthenticator, RenewResult
from socialkit.exceptions import (
    AuthenticationFailedError,
    NotSupportedError,
    UnsupportedAccountTypeError,
)
from socialkit.models import Account, AuthProtocol, HostAccount


@pytest.fixture
def backend(fake_backend):
    return fake_backend


@pytest.fixture
def authenticator(backend) -> HostManagedAuthenticator:
    return HostManagedAuthenticator(
        "platform", "com.example.social", backend, access_options={"audience": "everyone"}
    )


class TestCapabilities:
    def test_flags(self, authenticator: HostManagedAuthenticator) -> None:
        assert authenticator.protocol is AuthProtocol.HOST_MANAGED
        assert authenticator.supports_authentication is False
        assert authenticator.supports_reauthorization is True

    @pytest.mark.asyncio
    async def test_begin_authentication_not_supported(self, authenticator, fake_ui) -> None:
        with pytest.raises(NotSupportedError):
            await authenticator.begin_authentication(fake_ui("https://unused.example/"))


class TestListAccounts:
    @pytest.mark.asyncio
    async def test_wraps_handles(self, authenticator, backend) -> None:
        accounts = await authenticator.list_accounts(allow_login_ui=False)

        assert [a.id for a in accounts] == ["acc-1", "acc-2"]
        assert [a.username for a in accounts] == ["jane", "joe"]
        assert all(isinstance(a, HostAccount) for a in accounts)
        assert accounts[0].handle is backend.handles[0]
        assert accounts[0].service_identifier == "platform"
        assert accounts[0].protocol is AuthProtocol.HOST_MANAGED

    @pytest.mark.asyncio
    async def test_without_ui_does_not_request_access(self, authenticator, backend) -> None:
        await authenticator.list_accounts(allow_login_ui=False)
        assert backend.access_requests == []

    @pytest.mark.asyncio
    async def test_with_ui_requests_access_first(self, authenticator, backend) -> None:
        accounts = await authenticator.list_accounts(allow_login_ui=True)
        assert backend.access_requests == [("com.example.social", {"audience": "everyone"})]
        assert len(accounts) == 2

    @pytest.mark.asyncio
    async def test_denied_access_yields_empty_list(
        self,
        backend,
        caplog: pytest.LogCaptureFixture,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        backend.grant = False
        authenticator = HostManagedAuthenticator("platform", "com.example.social", backend)

        monkeypatch.setattr(logging.getLogger("socialkit"), "propagate", True)
        with caplog.at_level(logging.WARNING, logger="socialkit.auth.host"):
            accounts = await authenticator.list_accounts(allow_login_ui=True)

        assert accounts == []
        assert "denied" in caplog.text


class TestReauthorize:
    @pytest.mark.asyncio
    async def test_renewed_returns_same_account(self, authenticator, backend) -> None:
        account = (await authenticator.list_accounts(allow_login_ui=False))[0]
        renewed = await authenticator.reauthorize(account)
        assert renewed is account
        assert backend.renewed == [backend.handles[0]]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("result", [RenewResult.REJECTED, RenewResult.FAILED])
    async def test_not_renewed_fails(self, backend, result: RenewResult) -> None:
        backend.renew_result = result
        authenticator = HostManagedAuthenticator("platform", "com.example.social", backend)
        account = authenticator.wrap(backend.handles[0])

        with pytest.raises(AuthenticationFailedError, match=result.value):
            await authenticator.reauthorize(account)

    @pytest.mark.asyncio
    async def test_oauth_account_rejected(self, authenticator) -> None:
        account = Account(
            id="x",
            properties={"access_token": "t"},
            service_identifier="platform",
            protocol=AuthProtocol.OAUTH2,
        )
        with pytest.raises(UnsupportedAccountTypeError):
            await authenticator.reauthorize(account)


class TestHostAccount:
    def test_handle_not_serialised(self) -> None:
        account = HostAccount(handle=object(), id="acc-1", service_identifier="platform")
        data = account.model_dump(mode="json")
        assert "handle" not in data
        assert "_handle" not in data
        assert data["protocol"] == "host_managed"

    def test_username_falls_back_to_id(self) -> None:
        account = HostAccount(handle=None, id="acc-1", service_identifier="platform")
        assert account.username == "acc-1"
