"""Credential stores holding every linked account.

Both engines load the whole collection, let callers mutate it, and persist it
again as a full replace. There is no partial update protocol; concurrent writers
race and the last one wins. Records that cannot be decoded (bad shape, or
encrypted with a key this process does not have) are carried through every
write unchanged, and a file that cannot be parsed is never overwritten.
"""

from __future__ import annotations

import json
import logging
import os
import sqlite3
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from irlink.core.security import TokenCipherService
from irlink.models.account import LinkedAccount

logger = logging.getLogger(__name__)

_ENCRYPTED_PREFIX = "fernet:"
_TOKEN_FIELDS = ("accessToken", "refreshToken")

RawRecord = Dict[str, Any]


class AccountStoreReadError(Exception):
    """Raised when the backing file or table exists but cannot be read."""


def _ensure_directory(path: Path) -> None:
    if path.parent and not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)


class AccountStore:
    """Repository of linked accounts keyed by ``external_id``.

    Subclasses provide ``_read_records`` and ``_write_records``; everything else
    is expressed as load-all, mutate, replace-all.
    """

    def __init__(self, *, token_cipher: Optional[TokenCipherService] = None) -> None:
        self._cipher = token_cipher
        self._lock = threading.RLock()

    def _read_records(self) -> List[RawRecord]:
        raise NotImplementedError

    def _write_records(self, records: List[RawRecord]) -> None:
        raise NotImplementedError

    def _load(self) -> Tuple[List[LinkedAccount], List[RawRecord]]:
        """Return the decodable accounts and the raw records that were not."""
        accounts: List[LinkedAccount] = []
        unreadable: List[RawRecord] = []
        for record in self._read_records():
            try:
                accounts.append(LinkedAccount.from_record(self._decode(record)))
            except (ValidationError, ValueError) as exc:
                logger.error(
                    "Skipping unreadable linked account %r: %s",
                    record.get("externalId"),
                    exc,
                )
                unreadable.append(record)
        return accounts, unreadable

    def _load_for_write(
        self,
    ) -> Optional[Tuple[List[LinkedAccount], List[RawRecord]]]:
        try:
            return self._load()
        except AccountStoreReadError as exc:
            logger.error("Error saving linked accounts; refusing to overwrite: %s", exc)
            return None

    def _save(
        self, accounts: Iterable[LinkedAccount], unreadable: List[RawRecord]
    ) -> bool:
        records = [self._encode(account.to_record()) for account in accounts]
        written_ids = {record["externalId"] for record in records}
        records.extend(
            record for record in unreadable if record.get("externalId") not in written_ids
        )
        try:
            self._write_records(records)
        except (OSError, sqlite3.Error):
            logger.exception("Error saving %d linked account(s)", len(records))
            return False
        logger.info("Saved %d linked account(s)", len(records))
        return True

    def list(self) -> List[LinkedAccount]:
        """Return every readable linked account in stored order."""
        try:
            accounts, _ = self._load()
        except AccountStoreReadError as exc:
            logger.error("Error loading linked accounts: %s", exc)
            return []
        return accounts

    def replace_all(self, accounts: Iterable[LinkedAccount]) -> bool:
        """Overwrite the store with ``accounts``. Returns False if nothing was written.

        Unreadable records whose external id is not among ``accounts`` are kept.
        """
        with self._lock:
            loaded = self._load_for_write()
            if loaded is None:
                return False
            return self._save(accounts, loaded[1])

    def get(self, external_id: str) -> Optional[LinkedAccount]:
        for account in self.list():
            if account.external_id == external_id:
                return account
        return None

    def upsert(self, account: LinkedAccount) -> bool:
        """Insert ``account`` or replace the record with the same external id in place."""
        with self._lock:
            loaded = self._load_for_write()
            if loaded is None:
                return False
            accounts, unreadable = loaded
            for index, existing in enumerate(accounts):
                if existing.external_id == account.external_id:
                    accounts[index] = account
                    break
            else:
                accounts.append(account)
            return self._save(accounts, unreadable)

    def update(self, account: LinkedAccount) -> bool:
        """Replace an existing record; False (and no write) when it was unlinked meanwhile."""
        with self._lock:
            loaded = self._load_for_write()
            if loaded is None:
                return False
            accounts, unreadable = loaded
            for index, existing in enumerate(accounts):
                if existing.external_id == account.external_id:
                    accounts[index] = account
                    return self._save(accounts, unreadable)
        return False

    def delete(self, external_id: str) -> bool:
        """Remove the account for ``external_id``; False when nothing was removed."""
        with self._lock:
            loaded = self._load_for_write()
            if loaded is None:
                return False
            accounts, unreadable = loaded
            remaining = [a for a in accounts if a.external_id != external_id]
            kept = [r for r in unreadable if r.get("externalId") != external_id]
            if len(remaining) == len(accounts) and len(kept) == len(unreadable):
                return False
            return self._save(remaining, kept)

    def find_by_name(self, query: str) -> List[LinkedAccount]:
        """Case-insensitive substring search over provider display names."""
        needle = query.strip().lower()
        if not needle:
            return []
        return [a for a in self.list() if needle in a.provider_name.lower()]

    def _encode(self, record: Dict[str, Any]) -> Dict[str, Any]:
        if self._cipher is None:
            return record
        for field in _TOKEN_FIELDS:
            value = record.get(field)
            if value:
                record[field] = _ENCRYPTED_PREFIX + self._cipher.encrypt(value)
        return record

    def _decode(self, record: Dict[str, Any]) -> Dict[str, Any]:
        decoded = dict(record)
        for field in _TOKEN_FIELDS:
            value = decoded.get(field)
            if not isinstance(value, str) or not value.startswith(_ENCRYPTED_PREFIX):
                # Plaintext tokens are accepted and get encrypted on the next save.
                continue
            if self._cipher is None:
                raise ValueError(
                    "Encrypted token found but TOKEN_ENCRYPTION_SECRET is not configured."
                )
            decoded[field] = self._cipher.decrypt(value[len(_ENCRYPTED_PREFIX):])
        return decoded


class JSONFileAccountStore(AccountStore):
    """Accounts kept as one pretty-printed JSON array, rewritten on every save."""

    def __init__(
        self, path: str, *, token_cipher: Optional[TokenCipherService] = None
    ) -> None:
        super().__init__(token_cipher=token_cipher)
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read_records(self) -> List[RawRecord]:
        if not self._path.exists():
            return []
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise AccountStoreReadError(f"{self._path}: {exc}") from exc
        if not isinstance(payload, list) or not all(
            isinstance(item, dict) for item in payload
        ):
            raise AccountStoreReadError(
                f"{self._path} does not contain a JSON array of objects"
            )
        return payload

    def _write_records(self, records: List[RawRecord]) -> None:
        _ensure_directory(self._path)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(records, handle, indent=2)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class SQLiteAccountStore(AccountStore):
    """Accounts kept as JSON documents in a SQLite table, ordered by position."""

    def __init__(
        self, db_path: str, *, token_cipher: Optional[TokenCipherService] = None
    ) -> None:
        super().__init__(token_cipher=token_cipher)
        self._db_path = Path(db_path)
        _ensure_directory(self._db_path)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS linked_accounts (
                    external_id TEXT PRIMARY KEY,
                    position INTEGER NOT NULL,
                    data TEXT NOT NULL
                )
                """
            )

    def _read_records(self) -> List[RawRecord]:
        try:
            with self._connect() as conn:
                rows = conn.execute(
                    "SELECT data FROM linked_accounts ORDER BY position"
                ).fetchall()
            records = [json.loads(row["data"]) for row in rows]
        except (sqlite3.Error, json.JSONDecodeError) as exc:
            raise AccountStoreReadError(f"{self._db_path}: {exc}") from exc
        if not all(isinstance(record, dict) for record in records):
            raise AccountStoreReadError(f"{self._db_path} holds a non-object record")
        return records

    def _write_records(self, records: List[RawRecord]) -> None:
        # The connection context manager commits both statements or neither.
        with self._connect() as conn:
            conn.execute("DELETE FROM linked_accounts")
            conn.executemany(
                "INSERT INTO linked_accounts (external_id, position, data) VALUES (?, ?, ?)",
                [
                    (record.get("externalId"), position, json.dumps(record))
                    for position, record in enumerate(records)
                ],
            )


__all__ = [
    "AccountStore",
    "AccountStoreReadError",
    "JSONFileAccountStore",
    "SQLiteAccountStore",
]
