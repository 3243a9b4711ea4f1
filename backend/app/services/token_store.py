"""File-backed store for single-use form tokens.

A token grants one form submission for one purchased plan. The store keeps
every token in memory and rewrites the whole JSON file after each insert and
each consumption, before the call returns. Mutations are serialized by an
asyncio.Lock that is held across the file write, so two requests can never
interleave their flushes or both consume the same token.

File layout: a JSON array of ``[token, {consumed, recipient, plan_variant,
created_at}]`` pairs. Files written by the first version of the service
(``{used, email, plan: "1 Week"}``) load too.
"""

import asyncio
import json
import logging
import os
import secrets
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from app.core.config import settings
from app.core.logging import redact_token
from app.schemas.plan import LEGACY_PLAN_LABELS, PlanVariant

logger = logging.getLogger(__name__)

# 16 random bytes, hex encoded
TOKEN_BYTES = 16

_MAX_CREATE_ATTEMPTS = 5


class TokenPersistenceError(Exception):
    """The token file could not be written."""


@dataclass(frozen=True)
class TokenRecord:
    """Stored state of one token.

    Attributes:
        consumed: True once a plan has been delivered for this token.
        recipient: Buyer email the token was issued to.
        plan_variant: Plan the token was issued for (never changes).
        created_at: ISO-8601 UTC issue time (empty for legacy entries).
    """

    consumed: bool
    recipient: str
    plan_variant: PlanVariant
    created_at: str = ""

    def to_json(self) -> dict[str, Any]:
        """Serialize for the token file."""
        return {
            "consumed": self.consumed,
            "recipient": self.recipient,
            "plan_variant": self.plan_variant.value,
            "created_at": self.created_at,
        }

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> "TokenRecord":
        """Parse a token file entry, current or legacy layout.

        Raises:
            ValueError: If the plan variant is unknown.
            KeyError: If a required key is missing.
        """
        if "plan_variant" in raw:
            variant = PlanVariant(raw["plan_variant"])
        else:
            label = raw["plan"]
            if label not in LEGACY_PLAN_LABELS:
                raise ValueError(f"Unknown legacy plan label: {label!r}")
            variant = LEGACY_PLAN_LABELS[label]

        return cls(
            consumed=bool(raw.get("consumed", raw.get("used", False))),
            recipient=str(raw.get("recipient", raw.get("email", ""))),
            plan_variant=variant,
            created_at=str(raw.get("created_at", "")),
        )


def _atomic_write_json(path: Path, obj: Any) -> None:
    """Write JSON to a temp file, fsync it, then rename over the target."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as fh:
        json.dump(obj, fh, ensure_ascii=False)
        fh.flush()
        os.fsync(fh.fileno())
    tmp.replace(path)


class TokenStore:
    """Persistent token collection with atomic consume.

    Besides the persisted ``consumed`` flag, the store tracks tokens that are
    reserved by an in-flight form submission. Reservations live in memory
    only; a restart drops them, which is harmless because nothing was
    consumed.
    """

    def __init__(self, path: Path) -> None:
        """Initialize the store and load the token file if present.

        Args:
            path: Location of the JSON token file.
        """
        self._path = path
        self._tokens: dict[str, TokenRecord] = {}
        self._reserved: set[str] = set()
        self._lock = asyncio.Lock()
        self._load()

    @property
    def path(self) -> Path:
        """Location of the token file."""
        return self._path

    def __len__(self) -> int:
        return len(self._tokens)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> None:
        """Load tokens from disk.

        A missing file means first run. An unreadable or corrupt file is
        logged and the store starts empty.
        """
        if not self._path.exists():
            logger.info("No token file at %s, starting empty", self._path)
            return

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            if not isinstance(raw, list):
                raise ValueError("token file is not a JSON array")
        except (OSError, ValueError) as e:
            logger.error(
                "Token file %s is unreadable, starting empty: %s", self._path, e
            )
            return

        for entry in raw:
            try:
                token, data = entry
                self._tokens[str(token)] = TokenRecord.from_json(data)
            except (TypeError, ValueError, KeyError) as e:
                logger.warning("Skipping malformed token entry: %s", e)

        logger.info("Loaded %d tokens from %s", len(self._tokens), self._path)

    def _snapshot(self) -> list[list[Any]]:
        return [[token, record.to_json()] for token, record in self._tokens.items()]

    async def _flush(self) -> None:
        """Write the whole collection. Caller must hold the lock."""
        snapshot = self._snapshot()
        try:
            await asyncio.to_thread(_atomic_write_json, self._path, snapshot)
        except OSError as e:
            logger.error("Failed to write token file %s: %s", self._path, e)
            raise TokenPersistenceError(str(e)) from e

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def create(self, plan_variant: PlanVariant, recipient: str) -> str:
        """Mint, store, and persist a new unconsumed token.

        Args:
            plan_variant: Plan the buyer purchased.
            recipient: Buyer email address.

        Returns:
            The new token string.

        Raises:
            TokenPersistenceError: If the file write fails (nothing is kept).
        """
        async with self._lock:
            token = secrets.token_hex(TOKEN_BYTES)
            attempts = 1
            while token in self._tokens and attempts < _MAX_CREATE_ATTEMPTS:
                token = secrets.token_hex(TOKEN_BYTES)
                attempts += 1
            if token in self._tokens:
                raise RuntimeError("Could not generate a unique token")

            self._tokens[token] = TokenRecord(
                consumed=False,
                recipient=recipient,
                plan_variant=plan_variant,
                created_at=datetime.now(UTC).isoformat(),
            )
            try:
                await self._flush()
            except TokenPersistenceError:
                del self._tokens[token]
                raise

        logger.info(
            "Created token %s for plan %s", redact_token(token), plan_variant.value
        )
        return token

    def lookup(self, token: str) -> TokenRecord | None:
        """Return the stored record for a token, or None."""
        if not token:
            return None
        return self._tokens.get(token)

    async def reserve(
        self, token: str, plan_variant: PlanVariant
    ) -> TokenRecord | None:
        """Validate a token for a plan and hold it for one submission.

        Succeeds only when the token exists, is unconsumed, was issued for
        ``plan_variant``, and is not held by another in-flight submission.

        Args:
            token: Token from the form's hidden field.
            plan_variant: Plan implied by the endpoint that was called.

        Returns:
            The token record, or None when any check fails.
        """
        async with self._lock:
            record = self.lookup(token)
            if record is None:
                reason = "unknown"
            elif record.consumed:
                reason = "consumed"
            elif record.plan_variant is not plan_variant:
                reason = "plan_mismatch"
            elif token in self._reserved:
                reason = "in_flight"
            else:
                self._reserved.add(token)
                return record

        logger.warning(
            "Rejected token %s for plan %s: %s",
            redact_token(token),
            plan_variant.value,
            reason,
        )
        return None

    async def release(self, token: str) -> None:
        """Drop the in-flight hold on a token after a failed submission."""
        async with self._lock:
            self._reserved.discard(token)

    async def mark_consumed(self, token: str) -> bool:
        """Consume a token and persist the change.

        Compare-and-set: only an existing, unconsumed token transitions.

        Args:
            token: Token to consume.

        Returns:
            True if this call consumed the token, False if it was unknown or
            already consumed.

        Raises:
            TokenPersistenceError: If the file write fails. The token stays
                consumed in memory so this process never delivers twice.
        """
        async with self._lock:
            record = self._tokens.get(token)
            if record is None or record.consumed:
                return False
            self._tokens[token] = replace(record, consumed=True)
            self._reserved.discard(token)
            await self._flush()

        logger.info("Consumed token %s", redact_token(token))
        return True


_token_store: TokenStore | None = None


def get_token_store() -> TokenStore:
    """Get the process-wide token store, loading it on first use."""
    global _token_store
    if _token_store is None:
        _token_store = TokenStore(settings.token_store_path)
    return _token_store


def reset_token_store() -> None:
    """Drop the singleton (for testing)."""
    global _token_store
    _token_store = None
