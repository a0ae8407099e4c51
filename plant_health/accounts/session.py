"""Session store - which principal is currently logged in.

Two states: anonymous (current is None) and authenticated. The current
principal is mirrored to a session marker in the key-value store so a
restart can restore it without re-entering credentials.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from plant_health import config
from plant_health.errors import (
    GENERIC_STORAGE_MESSAGE,
    DuplicateAccount,
    InvalidCredentials,
    PlantHealthError,
    StorageError,
)
from plant_health.storage.kv_store import KeyValueStore

from .registry import AccountRegistry
from .schemas import Principal

logger = logging.getLogger(__name__)

INVALID_LOGIN_MESSAGE = "Invalid email or password."
DUPLICATE_ACCOUNT_MESSAGE = "An account with this email already exists."


class SessionStore:
    """Holds the current principal and the last authentication error."""

    def __init__(
        self,
        registry: AccountRegistry,
        store: KeyValueStore,
        key: str = config.CURRENT_USER_KEY,
    ):
        self.registry = registry
        self.store = store
        self.key = key
        self.current: Optional[Principal] = None
        self.auth_error: Optional[str] = None
        self.auth_failure: Optional[PlantHealthError] = None

    @property
    def is_authenticated(self) -> bool:
        return self.current is not None

    def _clear_error(self) -> None:
        self.auth_error = None
        self.auth_failure = None

    def _fail(self, error: PlantHealthError, message: str) -> None:
        self.auth_failure = error
        self.auth_error = message

    def _enter(self, principal: Principal) -> None:
        self.store.set(self.key, principal.model_dump_json())
        self.current = principal
        self._clear_error()
        logger.info(f"Session started for {principal.email} ({principal.role.value})")

    def login(self, email: str, password: str) -> Optional[Principal]:
        """Authenticate and start a session. Returns None on failure."""
        self._clear_error()
        try:
            principal = self.registry.authenticate(email, password)
            self._enter(principal)
        except InvalidCredentials as e:
            self._fail(e, INVALID_LOGIN_MESSAGE)
            return None
        except StorageError as e:
            logger.error(f"Could not persist session for {email}: {e}")
            self._fail(e, GENERIC_STORAGE_MESSAGE)
            return None
        return principal

    def register(self, email: str, password: str) -> Optional[Principal]:
        """Register a new account and log it in. Returns None on failure."""
        self._clear_error()
        try:
            principal = self.registry.register(email, password)
            self._enter(principal)
        except DuplicateAccount as e:
            self._fail(e, DUPLICATE_ACCOUNT_MESSAGE)
            return None
        except StorageError as e:
            logger.error(f"Could not register {email}: {e}")
            self._fail(e, GENERIC_STORAGE_MESSAGE)
            return None
        return principal

    def logout(self) -> None:
        """End the session unconditionally."""
        previous = self.current
        self.current = None
        self._clear_error()
        try:
            self.store.remove(self.key)
        except StorageError as e:
            logger.error(f"Could not clear session marker: {e}")
            self._fail(e, GENERIC_STORAGE_MESSAGE)
        if previous is not None:
            logger.info(f"Session ended for {previous.email}")

    def restore(self) -> Optional[Principal]:
        """Restore a persisted session marker, trusting it as-is.

        Called once at startup. The marker is not re-validated against the
        registry; a corrupt marker is dropped and the session stays anonymous.
        """
        try:
            raw = self.store.get(self.key)
        except StorageError as e:
            logger.error(f"Could not read session marker: {e}")
            return None
        if not raw:
            return None

        try:
            principal = Principal.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding corrupt session marker: {e}")
            try:
                self.store.remove(self.key)
            except StorageError as remove_error:
                logger.error(f"Could not clear session marker: {remove_error}")
            return None

        self.current = principal
        logger.info(f"Restored session for {principal.email}")
        return principal
