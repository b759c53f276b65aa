"""Supabase-backed seen user repository."""

from dataclasses import dataclass

from supabase import Client

from style_bot.domain.models import SeenUserRecord
from style_bot.services.users import SeenUserRepository


@dataclass
class SupabaseSeenUserRepository(SeenUserRepository):
    """Supabase implementation for seen user bookkeeping."""

    client: Client
    table_name: str = "seen_users"

    def list_user_ids(self) -> list[str]:
        """Return ids of every recorded user."""
        response = self.client.table(self.table_name).select("user_id").execute()
        return [str(row["user_id"]) for row in response.data or []]

    def add(self, record: SeenUserRecord) -> None:
        """Insert the user unless a row already exists."""
        self.client.table(self.table_name).upsert(
            {
                "user_id": record.user_id,
                "first_seen_at": record.first_seen_at.isoformat(),
            },
            on_conflict="user_id",
            ignore_duplicates=True,
        ).execute()
