# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""
ASVAB Search — API Key Gate.

Every search route acts on behalf of one learner. A bearer key resolves
to that learner's ``user_id`` plus the permissions it was issued with.
Only SHA-256 digests are stored; the raw key is shown once, at issue time.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
import sqlite3
from contextlib import closing
from dataclasses import dataclass
from typing import Iterable, Optional

from fastapi import Depends, Header, HTTPException

from asvab_search.i18n import get_trans
from asvab_search.temporal import now_iso

logger = logging.getLogger("asvab_search.auth")

KEY_PREFIX = "asv_"
PERMISSIONS = ("read", "write", "admin")
DEFAULT_PERMISSIONS = ("read", "write")

_TOKEN_BYTES = 32
_DISPLAY_CHARS = 12

API_KEYS_DDL = """
CREATE TABLE IF NOT EXISTS api_keys (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT NOT NULL,
    digest      TEXT NOT NULL UNIQUE,
    display     TEXT NOT NULL,
    user_id     TEXT NOT NULL,
    permissions TEXT NOT NULL,
    created_at  TEXT NOT NULL,
    revoked_at  TEXT
);
CREATE INDEX IF NOT EXISTS idx_api_keys_user ON api_keys(user_id);
"""


@dataclass(frozen=True)
class APIKey:
    id: int
    name: str
    key_prefix: str
    user_id: str
    permissions: tuple[str, ...]
    created_at: str
    is_active: bool = True


@dataclass(frozen=True)
class AuthResult:
    """Outcome of resolving a bearer key. ``error`` is an i18n key."""

    authenticated: bool
    user_id: str = ""
    permissions: tuple[str, ...] = ()
    key_name: str = ""
    error: str = ""


def _digest(raw_key: str) -> str:
    return hashlib.sha256(raw_key.encode()).hexdigest()


def _normalize_permissions(permissions: Optional[Iterable[str]]) -> tuple[str, ...]:
    perms = tuple(dict.fromkeys(p.strip() for p in permissions or () if p.strip()))
    if not perms:
        return DEFAULT_PERMISSIONS
    unknown = [p for p in perms if p not in PERMISSIONS]
    if unknown:
        raise ValueError(f"Unknown permission(s): {', '.join(unknown)}")
    return perms


def _row_to_key(row: sqlite3.Row) -> APIKey:
    return APIKey(
        id=row["id"],
        name=row["name"],
        key_prefix=row["display"],
        user_id=row["user_id"],
        permissions=tuple(row["permissions"].split(",")),
        created_at=row["created_at"],
        is_active=row["revoked_at"] is None,
    )


class AuthManager:
    """Issues, resolves and revokes the API keys stored beside the search data.

    Successful lookups are memoized per digest; revoking any key drops
    the memo so a revoked key stops resolving immediately.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._resolved: dict[str, AuthResult] = {}
        with closing(self._connect()) as conn:
            conn.executescript(API_KEYS_DDL)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=10)
        conn.row_factory = sqlite3.Row
        return conn

    def create_key(
        self, name: str, user_id: str, permissions: Optional[Iterable[str]] = None
    ) -> tuple[str, APIKey]:
        """Issue a key for *user_id*. Returns ``(raw_key, metadata)``."""
        perms = _normalize_permissions(permissions)
        raw_key = KEY_PREFIX + secrets.token_hex(_TOKEN_BYTES)
        created_at = now_iso()
        with closing(self._connect()) as conn, conn:
            cursor = conn.execute(
                "INSERT INTO api_keys (name, digest, display, user_id, permissions, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (name, _digest(raw_key), raw_key[:_DISPLAY_CHARS], user_id, ",".join(perms), created_at),
            )
            key_id = cursor.lastrowid
        logger.info("Issued API key '%s' for user '%s' (%s)", name, user_id, ",".join(perms))
        return raw_key, APIKey(key_id, name, raw_key[:_DISPLAY_CHARS], user_id, perms, created_at)

    def authenticate(self, raw_key: str) -> AuthResult:
        if not raw_key or not raw_key.startswith(KEY_PREFIX):
            return AuthResult(False, error="error_invalid_key_format")
        digest = _digest(raw_key)
        if digest in self._resolved:
            return self._resolved[digest]

        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT name, user_id, permissions FROM api_keys "
                "WHERE digest = ? AND revoked_at IS NULL",
                (digest,),
            ).fetchone()
        if row is None:
            return AuthResult(False, error="error_invalid_key")

        result = AuthResult(
            True,
            user_id=row["user_id"],
            permissions=tuple(row["permissions"].split(",")),
            key_name=row["name"],
        )
        self._resolved[digest] = result
        return result

    def revoke_key(self, key_id: int) -> bool:
        """Revoke by id. False when no active key has that id."""
        with closing(self._connect()) as conn, conn:
            revoked = conn.execute(
                "UPDATE api_keys SET revoked_at = ? WHERE id = ? AND revoked_at IS NULL",
                (now_iso(), key_id),
            ).rowcount > 0
        if revoked:
            self._resolved.clear()
            logger.info("Revoked API key %d", key_id)
        return revoked

    def list_keys(self, user_id: Optional[str] = None) -> list[APIKey]:
        sql = "SELECT * FROM api_keys"
        params: tuple = ()
        if user_id:
            sql += " WHERE user_id = ?"
            params = (user_id,)
        with closing(self._connect()) as conn:
            rows = conn.execute(sql + " ORDER BY id DESC", params).fetchall()
        return [_row_to_key(r) for r in rows]


_auth_manager: Optional[AuthManager] = None


def get_auth_manager() -> AuthManager:
    from asvab_search import config

    global _auth_manager
    if _auth_manager is None:
        _auth_manager = AuthManager(config.DB_PATH)
    return _auth_manager


# ─── FastAPI dependencies ─────────────────────────────────────────────


async def require_auth(
    authorization: Optional[str] = Header(None, description="Bearer <api-key>"),
    accept_language: str = Header("en", alias="Accept-Language"),
) -> AuthResult:
    """Resolve the caller's user id from ``Authorization: Bearer <key>``."""
    if not authorization:
        raise HTTPException(status_code=401, detail=get_trans("error_missing_auth", accept_language))
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail=get_trans("error_bearer_format", accept_language))

    result = get_auth_manager().authenticate(token.strip())
    if not result.authenticated:
        raise HTTPException(
            status_code=401,
            detail=get_trans(result.error, accept_language),
            headers={"WWW-Authenticate": "Bearer"},
        )
    return result


def require_permission(permission: str):
    """Dependency factory: the caller must hold *permission*."""
    if permission not in PERMISSIONS:
        raise ValueError(f"Unknown permission: {permission}")

    async def checker(
        auth: AuthResult = Depends(require_auth),
        accept_language: str = Header("en", alias="Accept-Language"),
    ) -> AuthResult:
        if permission not in auth.permissions:
            raise HTTPException(
                status_code=403,
                detail=get_trans("error_missing_permission", accept_language).format(
                    permission=permission
                ),
            )
        return auth

    return checker
