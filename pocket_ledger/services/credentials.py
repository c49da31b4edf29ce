"""
OCR Credential Manager

The Gemini key belongs to the user. It is stored in the remote settings
store and mirrored in the local cache so the receipt scanner works when
the remote store is unreachable.

Remote failures are logged and absorbed; the cache always wins as a
fallback.
"""

from typing import Optional

from pocket_ledger.audit import AuditLogger
from pocket_ledger.models.audit import AuditEventBuilder
from pocket_ledger.services.cache import OfflineCache
from pocket_ledger.services.storage import SettingsStoreInterface, StorageError


class CredentialManager:
    """Loads, saves and clears the per-user OCR API key."""

    def __init__(
        self,
        cache: OfflineCache,
        audit_logger: AuditLogger,
        settings_store: Optional[SettingsStoreInterface] = None,
    ):
        self._cache = cache
        self._audit = audit_logger
        self._store = settings_store
        self.current: Optional[str] = None

    async def load(self, owner_id: Optional[str]) -> Optional[str]:
        """Remote first, then the local cache."""
        if self._store is not None and owner_id:
            try:
                remote = await self._store.get_secret(owner_id)
            except StorageError as e:
                self._audit.log_external_service_error("settings_store", str(e))
            else:
                if remote:
                    self._cache.set_credential(remote)
                    self.current = remote
                    return remote

        self.current = self._cache.get_credential()
        return self.current

    async def save(self, owner_id: Optional[str], key: str) -> str:
        """
        Store a new key remotely (best effort) and in the cache (always).

        Raises:
            ValueError: If the key is blank
        """
        key = (key or "").strip()
        if not key:
            raise ValueError("API key cannot be empty")

        stored_remotely = False
        if self._store is not None and owner_id:
            try:
                await self._store.upsert_secret(owner_id, key)
                stored_remotely = True
            except StorageError as e:
                self._audit.log_external_service_error("settings_store", str(e))

        self._cache.set_credential(key)
        self.current = key
        self._audit.log(AuditEventBuilder.credential_saved(
            owner_id=owner_id or "local",
            stored_remotely=stored_remotely,
        ))
        return key

    async def clear(self, owner_id: Optional[str]) -> None:
        if self._store is not None and owner_id:
            try:
                await self._store.clear_secret(owner_id)
            except StorageError as e:
                self._audit.log_external_service_error("settings_store", str(e))

        self._cache.remove_credential()
        self.current = None
        self._audit.log(AuditEventBuilder.credential_cleared(owner_id=owner_id or "local"))
