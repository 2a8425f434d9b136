"""User repository."""

from typing import Any, Dict, Optional

from framework.repository.base import BaseRepository
from framework.response import ResultEnvelope

ROLES = ("customer", "vendor", "admin", "super_admin")


class UserRepository(BaseRepository):
    """Users over either backend; the password never leaves on a read."""

    entity_name = "User"
    entity_plural = "users"
    collection_name = "users"
    counter_key = "users"

    filter_aliases = {
        **BaseRepository.filter_aliases,
        "fullName": "full_name",
        "isActive": "is_active",
    }
    search_fields = ("email", "full_name", "username")
    hidden_fields = ("password",)

    def _record_created(self, record: Dict[str, Any]) -> None:
        super()._record_created(record)
        if self.counters is not None and record.get("role") == "vendor":
            self.counters.update_progress("vendors")

    async def get_all_users(self, filters: Optional[Dict[str, Any]] = None, page: int = 1, limit: int = 20) -> ResultEnvelope:
        return await self.get_all(filters, page, limit)

    async def get_user_by_id(self, id: Any) -> ResultEnvelope:
        return await self.get_by_id(id)

    async def get_user_by_email(self, email: str) -> ResultEnvelope:
        """Find user by email, password included (for the authentication layer)."""
        if not email:
            return ResultEnvelope.fail()
        return await self.find_one({"email": email}, include_hidden=True)

    async def get_users_by_role(self, role: str, page: int = 1, limit: int = 20) -> ResultEnvelope:
        return await self.get_all({"role": role}, page, limit)

    async def create_user(self, user_data: Dict[str, Any]) -> ResultEnvelope:
        return await self.create(user_data)

    async def update_user(self, id: Any, updates: Dict[str, Any]) -> ResultEnvelope:
        return await self.update(id, updates)

    async def delete_user(self, id: Any) -> ResultEnvelope:
        return await self.delete(id)

    async def count_by_role(self, role: str) -> ResultEnvelope:
        return await self.count({"role": role})

    async def get_admin_stats(self) -> ResultEnvelope:
        """Total users plus a count per role."""
        total = await self.count()
        if not total.success:
            return total
        stats = {"total_users": total.data}
        for role in ROLES:
            result = await self.count_by_role(role)
            if not result.success:
                return result
            stats[f"{role}_count"] = result.data
        return ResultEnvelope.ok(stats)
