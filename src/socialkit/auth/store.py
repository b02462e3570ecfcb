"""Credential stores keyed by service id.

:class:`FileCredentialStore` keeps every account of a service in
``~/.local/share/socialkit/credentials/<service_id>.json`` (XDG) or the
platform-equivalent directory. Files are written atomically through
:func:`~socialkit.config.atomic_write` with ``0o600`` permissions so that
tokens are never world-readable, even momentarily.

Saving is keyed by :attr:`~socialkit.models.Account.id`: saving an account
whose id is already stored replaces the entry in place, so a renewed
account overwrites its predecessor without changing the listing order.

See Also:
    :class:`~socialkit.service.Service` -- loads and saves through a store.
"""

from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from socialkit.config import atomic_write, get_credentials_dir
from socialkit.exceptions import StorageError
from socialkit.models import Account, HostAccount


def _upsert(accounts: list[Account], account: Account) -> list[Account]:
    for index, existing in enumerate(accounts):
        if existing.id == account.id:
            return accounts[:index] + [account] + accounts[index + 1:]
    return accounts + [account]


class CredentialStore(ABC):
    """Persist accounts per service."""

    @abstractmethod
    async def save(self, service_id: str, account: Account) -> None:
        """Store *account*, replacing any stored account with the same id.

        Raises:
            StorageError: If the account cannot be written.
        """
        ...

    @abstractmethod
    async def load_all(self, service_id: str) -> list[Account]:
        """Return every stored account of *service_id*, in save order.

        Raises:
            StorageError: If the stored data cannot be read.
        """
        ...

    @abstractmethod
    async def delete(self, service_id: str, account: Account) -> None:
        """Remove the account with *account*'s id. Missing accounts are ignored."""
        ...


class MemoryCredentialStore(CredentialStore):
    """Process-local store. Nothing survives the interpreter."""

    def __init__(self) -> None:
        self._accounts: dict[str, list[Account]] = {}

    async def save(self, service_id: str, account: Account) -> None:
        self._accounts[service_id] = _upsert(self._accounts.get(service_id, []), account)

    async def load_all(self, service_id: str) -> list[Account]:
        return list(self._accounts.get(service_id, []))

    async def delete(self, service_id: str, account: Account) -> None:
        remaining = [a for a in self._accounts.get(service_id, []) if a.id != account.id]
        self._accounts[service_id] = remaining


class FileCredentialStore(CredentialStore):
    """One JSON file per service under the credentials directory.

    Blocking file I/O runs in a worker thread via :func:`asyncio.to_thread`.

    Args:
        directory: Directory holding the files. Defaults to
            :func:`~socialkit.config.get_credentials_dir`.

    Example::

        store = FileCredentialStore()
        await store.save("facebook", account)
        accounts = await store.load_all("facebook")
    """

    def __init__(self, directory: Optional[Path] = None) -> None:
        self._directory = directory

    @property
    def directory(self) -> Path:
        if self._directory is None:
            self._directory = get_credentials_dir()
        return self._directory

    def path_for(self, service_id: str) -> Path:
        """The file holding *service_id*'s accounts."""
        return self.directory / f"{service_id}.json"

    async def save(self, service_id: str, account: Account) -> None:
        if isinstance(account, HostAccount):
            raise StorageError("Platform-managed accounts cannot be stored")
        await asyncio.to_thread(self._save_sync, service_id, account)

    async def load_all(self, service_id: str) -> list[Account]:
        return await asyncio.to_thread(self._read, service_id)

    async def delete(self, service_id: str, account: Account) -> None:
        await asyncio.to_thread(self._delete_sync, service_id, account.id)

    def _read(self, service_id: str) -> list[Account]:
        path = self.path_for(service_id)
        if not path.is_file():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return [Account.model_validate(entry) for entry in data.get("accounts", [])]
        except OSError as exc:
            raise StorageError(f"Cannot read credentials at {path}: {exc}") from exc
        except (json.JSONDecodeError, ValidationError, AttributeError) as exc:
            raise StorageError(f"Corrupt credentials file {path}: {exc}") from exc

    def _write(self, service_id: str, accounts: list[Account]) -> None:
        path = self.path_for(service_id)
        document = {"accounts": [a.model_dump(mode="json") for a in accounts]}
        try:
            atomic_write(path, json.dumps(document, indent=2) + "\n", mode=0o600)
        except OSError as exc:
            raise StorageError(f"Cannot write credentials to {path}: {exc}") from exc

    def _save_sync(self, service_id: str, account: Account) -> None:
        self._write(service_id, _upsert(self._read(service_id), account))

    def _delete_sync(self, service_id: str, account_id: str) -> None:
        accounts = self._read(service_id)
        remaining = [a for a in accounts if a.id != account_id]
        if len(remaining) != len(accounts):
            self._write(service_id, remaining)
