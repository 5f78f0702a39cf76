"""Supabase-backed API key repository."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from statickit.domain.keys import EncryptedData, Provider, StoredKeySummary
from statickit.services.api_keys import ApiKeyRepository


@dataclass
class SupabaseApiKeyRepository(ApiKeyRepository):
    """Supabase implementation for encrypted API keys."""

    client: Client

    def store_key(
        self,
        user_id: str,
        provider: Provider,
        data: EncryptedData,
        key_prefix: str,
    ) -> str:
        """Update the existing row for the provider or insert a new one."""
        now = datetime.now(tz=UTC).isoformat()
        payload = {
            "encrypted_key": data.encrypted,
            "iv": data.iv,
            "auth_tag": data.auth_tag,
            "key_prefix": key_prefix,
            "updated_at": now,
        }
        existing = self._find_id(user_id, provider)
        if existing is not None:
            self.client.table("api_keys").update(payload).eq("id", existing).execute()
            return existing

        response = (
            self.client.table("api_keys")
            .insert(
                {
                    "user_id": user_id,
                    "provider": provider,
                    "created_at": now,
                    **payload,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to store API key")
        return str(response.data[0]["id"])

    def remove_key(self, user_id: str, provider: Provider) -> bool:
        """Delete the key row, if one exists."""
        existing = self._find_id(user_id, provider)
        if existing is None:
            return False
        self.client.table("api_keys").delete().eq("id", existing).execute()
        return True

    def list_keys(self, user_id: str) -> list[StoredKeySummary]:
        """Return masked key data only."""
        response = (
            self.client.table("api_keys")
            .select("id, provider, key_prefix, created_at, updated_at")
            .eq("user_id", user_id)
            .execute()
        )
        return [
            StoredKeySummary(
                id=str(row["id"]),
                provider=row["provider"],
                key_prefix=row["key_prefix"],
                created_at=_parse_timestamp(row.get("created_at")),
                updated_at=_parse_timestamp(row.get("updated_at")),
            )
            for row in response.data or []
        ]

    def get_encrypted_key(
        self, user_id: str, provider: Provider
    ) -> EncryptedData | None:
        """Return the encrypted key parts for decryption."""
        response = (
            self.client.table("api_keys")
            .select("encrypted_key, iv, auth_tag")
            .eq("user_id", user_id)
            .eq("provider", provider)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return EncryptedData(
            encrypted=row["encrypted_key"],
            iv=row["iv"],
            auth_tag=row["auth_tag"],
        )

    def _find_id(self, user_id: str, provider: Provider) -> str | None:
        response = (
            self.client.table("api_keys")
            .select("id")
            .eq("user_id", user_id)
            .eq("provider", provider)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return str(response.data[0]["id"])


def _parse_timestamp(value: object) -> datetime | None:
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return None
