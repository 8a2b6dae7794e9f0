"""
Admin API client: analytics, user management, system health, activity log
and counselor approval.
"""
import logging
from typing import List, Optional

from carebridge.schemas.admin import (
    AdminActivityEntry, AdminUser, AdminUserList, Analytics, AnalyticsQueryParams,
    CounselorApproval, CounselorApprovalInput, SystemHealthStatus,
    UpdateUserRoleInput, UpsertSystemHealthInput, UserQueryParams,
)
from carebridge.services.api_client import ApiClient, extract, parse_row, parse_rows

logger = logging.getLogger(__name__)


class AdminApi:
    base_path = "/api/admin"

    def __init__(self, client: ApiClient):
        self.client = client

    async def get_analytics(self, params: Optional[AnalyticsQueryParams] = None) -> Analytics:
        data = await self.client.get(f"{self.base_path}/analytics", params=params.to_payload() if params else None)
        return parse_row(extract(data, "analytics") or {}, Analytics.from_row)

    async def list_users(self, params: Optional[UserQueryParams] = None) -> AdminUserList:
        params = params or UserQueryParams()
        data = await self.client.get(f"{self.base_path}/users", params=params.to_payload())
        users = parse_rows(extract(data, "users"), AdminUser.from_row)
        data = data if isinstance(data, dict) else {}
        return AdminUserList(
            users=users,
            total=int(data.get("total") or len(users)),
            limit=int(data.get("limit") or params.limit or 20),
            offset=int(data.get("offset") or params.offset or 0),
        )

    async def get_user(self, user_id: str) -> AdminUser:
        data = await self.client.get(f"{self.base_path}/users/{user_id}")
        return parse_row(extract(data, "user"), AdminUser.from_row)

    async def update_user_role(self, user_id: str, data: UpdateUserRoleInput) -> AdminUser:
        result = await self.client.put(f"{self.base_path}/users/{user_id}/role", json_body=data.to_payload())
        user = parse_row(extract(result, "user"), AdminUser.from_row)
        logger.info(f"User {user_id} role changed to {data.role}")
        return user

    async def delete_user(self, user_id: str) -> None:
        await self.client.delete(f"{self.base_path}/users/{user_id}")
        logger.info(f"User {user_id} deleted")

    # System health and activity

    async def list_system_health(self) -> List[SystemHealthStatus]:
        data = await self.client.get(f"{self.base_path}/system-health")
        statuses = parse_rows(extract(data, "components"), SystemHealthStatus.from_row)
        return sorted(statuses, key=lambda s: s.component)

    async def upsert_system_health(self, component: str, data: UpsertSystemHealthInput) -> SystemHealthStatus:
        """Create or replace the health record of ``component``."""
        # Unset text fields go out as null so a new report clears the old one
        body = {"component": component, **data.to_view()}
        result = await self.client.put(f"{self.base_path}/system-health/{component}", json_body=body)
        status = parse_row(extract(result, "health"), SystemHealthStatus.from_row)
        if status.severity == "critical":
            logger.warning(f"Component {component} reported {status.status}: {status.summary}")
        return status

    async def list_admin_activity(self, limit: int = 50) -> List[AdminActivityEntry]:
        """Most recent admin actions first."""
        data = await self.client.get(f"{self.base_path}/activity", params={"limit": limit})
        return parse_rows(extract(data, "activity"), AdminActivityEntry.from_row)

    # Counselor approval

    async def update_counselor_approval(self, data: CounselorApprovalInput) -> CounselorApproval:
        result = await self.client.post(f"{self.base_path}/counselors/approval", json_body=data.to_payload())
        approval = parse_row(extract(result, "profile"), CounselorApproval.from_row)
        logger.info(f"Counselor {data.counselor_id} approval set to {data.approval_status}")
        return approval
