"""
Notifications API client.
"""
from typing import Optional

from carebridge.schemas.notifications import (
    CreateNotificationInput, MarkNotificationsReadInput, Notification,
    NotificationList, NotificationQueryParams,
)
from carebridge.services.api_client import ApiClient, extract, parse_row, parse_rows


class NotificationsApi:
    base_path = "/api/notifications"

    def __init__(self, client: ApiClient):
        self.client = client

    async def list_notifications(self, params: Optional[NotificationQueryParams] = None) -> NotificationList:
        data = await self.client.get(self.base_path, params=params.to_payload() if params else None)
        notifications = parse_rows(extract(data, "notifications"), Notification.from_row)
        data = data if isinstance(data, dict) else {}
        unread = data.get("unread_count")
        if unread is None:
            unread = sum(1 for n in notifications if not n.is_read)
        return NotificationList(
            notifications=notifications,
            total=int(data.get("total") or len(notifications)),
            unread_count=int(unread),
        )

    async def get_notification(self, notification_id: str) -> Notification:
        data = await self.client.get(f"{self.base_path}/{notification_id}")
        return parse_row(extract(data, "notification"), Notification.from_row)

    async def create_notification(self, data: CreateNotificationInput) -> Notification:
        result = await self.client.post(self.base_path, json_body=data.to_payload())
        return parse_row(extract(result, "notification"), Notification.from_row)

    async def mark_notifications_read(self, data: Optional[MarkNotificationsReadInput] = None) -> None:
        data = data or MarkNotificationsReadInput(mark_all=True)
        await self.client.post(f"{self.base_path}/read", json_body=data.to_payload())

    async def delete_notification(self, notification_id: str) -> None:
        await self.client.delete(f"{self.base_path}/{notification_id}")
