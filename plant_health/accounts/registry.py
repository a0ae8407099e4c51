"""Account registry - registered principals, their credentials and roles.

The registry lives in memory and is rewritten in full to the key-value
store on every mutation. Records are never updated or deleted.

Usage:
    registry = AccountRegistry(store)
    registry.load()
    principal = registry.authenticate("admin@plant.health", "admin123")
"""

import json
import logging
import uuid
from typing import Optional

from pydantic import TypeAdapter

from plant_health import config
from plant_health.errors import DuplicateAccount, InvalidCredentials, StorageError
from plant_health.storage.kv_store import KeyValueStore

from .schemas import CredentialRecord, Principal, Role

logger = logging.getLogger(__name__)

_records_adapter = TypeAdapter(list[CredentialRecord])


def _seed_admin() -> CredentialRecord:
    return CredentialRecord(
        id=config.ADMIN_ID,
        email=config.ADMIN_EMAIL,
        password=config.ADMIN_PASSWORD,
        role=Role.ADMIN,
    )


class AccountRegistry:
    """Registry of credential records keyed by email."""

    def __init__(self, store: KeyValueStore, key: str = config.USERS_KEY):
        self.store = store
        self.key = key
        self._records: list[CredentialRecord] = []
        self._loaded = False

    def load(self) -> None:
        """Load records from the store, seeding the admin on first run.

        If the store cannot be read, only the seeded admin is available and
        the registry stays unloaded: the next access retries the read and
        registration is refused until one succeeds. A failed write of the
        seeded admin is logged and retried by the next save.
        """
        if self._loaded:
            return

        try:
            raw = self.store.get(self.key)
        except StorageError as e:
            logger.error(f"Could not read account registry, using seeded admin only: {e}")
            self._records = [_seed_admin()]
            return

        records: list[CredentialRecord] = []
        if raw:
            try:
                records = _records_adapter.validate_json(raw)
            except ValueError as e:
                logger.error(f"Failed to load account registry, reseeding: {e}")
                records = []

        self._records = records
        self._loaded = True

        if not any(r.role == Role.ADMIN for r in self._records):
            self._records.insert(0, _seed_admin())
            try:
                self._save()
                logger.info(f"Seeded administrator account {config.ADMIN_EMAIL}")
            except StorageError as e:
                logger.error(f"Could not persist seeded administrator account: {e}")

        logger.info(f"Loaded {len(self._records)} accounts")

    def _save(self) -> None:
        """Persist the full registry (synchronous, whole-blob rewrite)."""
        payload = [r.model_dump(mode="json") for r in self._records]
        self.store.set(self.key, json.dumps(payload, ensure_ascii=False))

    def _find(self, email: str) -> Optional[CredentialRecord]:
        for record in self._records:
            if record.email == email:
                return record
        return None

    def get(self, email: str) -> Optional[Principal]:
        """Get a principal by exact email."""
        self.load()
        record = self._find(email)
        return record.to_principal() if record else None

    def count(self) -> int:
        self.load()
        return len(self._records)

    def list_principals(self) -> list[Principal]:
        """List all principals in registration order (no passwords)."""
        self.load()
        return [r.to_principal() for r in self._records]

    def register(self, email: str, password: str) -> Principal:
        """Create a new user-role account.

        Raises:
            DuplicateAccount: If the email is already registered
            StorageError: If the registry could not be persisted
        """
        self.load()
        if not self._loaded:
            raise StorageError("Account registry is unavailable")
        if self._find(email) is not None:
            raise DuplicateAccount(f"An account with email {email} already exists")

        record = CredentialRecord(
            id=f"user-{uuid.uuid4().hex[:12]}",
            email=email,
            password=password,
            role=Role.USER,
        )
        self._records.append(record)
        try:
            self._save()
        except Exception:
            self._records.pop()
            raise

        logger.info(f"Registered account {email} ({record.id})")
        return record.to_principal()

    def authenticate(self, email: str, password: str) -> Principal:
        """Return the principal whose email and password both match exactly.

        Raises:
            InvalidCredentials: If no record matches
        """
        self.load()
        record = self._find(email)
        if record is None or record.password != password:
            logger.info(f"Failed login attempt for {email}")
            raise InvalidCredentials("Invalid email or password")
        return record.to_principal()
