"""
Counseling sessions API client.
"""
from typing import Optional

from carebridge.schemas.sessions import (
    RescheduleSessionInput, Session, SessionCreate, SessionList,
    SessionQueryParams, SessionRoom, SessionStats, SessionUpdate,
)
from carebridge.services.api_client import ApiClient, extract, parse_row, parse_rows


class SessionsApi:
    base_path = "/api/sessions"

    def __init__(self, client: ApiClient):
        self.client = client

    async def list_sessions(self, params: Optional[SessionQueryParams] = None) -> SessionList:
        data = await self.client.get(self.base_path, params=params.to_payload() if params else None)
        sessions = parse_rows(extract(data, "sessions"), Session.from_row)
        total = data.get("total") if isinstance(data, dict) else None
        return SessionList(sessions=sessions, total=int(total or len(sessions)))

    async def get_session(self, session_id: str) -> Session:
        data = await self.client.get(f"{self.base_path}/{session_id}")
        return parse_row(extract(data, "session"), Session.from_row)

    async def create_session(self, data: SessionCreate) -> Session:
        result = await self.client.post(self.base_path, json_body=data.to_payload())
        return parse_row(extract(result, "session"), Session.from_row)

    async def update_session(self, session_id: str, data: SessionUpdate) -> Session:
        result = await self.client.put(f"{self.base_path}/{session_id}", json_body=data.to_payload())
        return parse_row(extract(result, "session"), Session.from_row)

    async def reschedule_session(self, session_id: str, data: RescheduleSessionInput) -> Session:
        result = await self.client.post(f"{self.base_path}/{session_id}/reschedule", json_body=data.to_payload())
        return parse_row(extract(result, "session"), Session.from_row)

    async def cancel_session(self, session_id: str, reason: Optional[str] = None) -> Session:
        body = {"reason": reason} if reason else None
        result = await self.client.post(f"{self.base_path}/{session_id}/cancel", json_body=body)
        return parse_row(extract(result, "session"), Session.from_row)

    async def complete_session(self, session_id: str, notes: Optional[str] = None) -> Session:
        body = {"notes": notes} if notes else None
        result = await self.client.post(f"{self.base_path}/{session_id}/complete", json_body=body)
        return parse_row(extract(result, "session"), Session.from_row)

    async def get_session_room(self, session_id: str) -> SessionRoom:
        data = await self.client.get(f"{self.base_path}/{session_id}/jitsi-room")
        return parse_row(extract(data, "room"), SessionRoom.from_row)

    async def get_patient_session_stats(self, user_id: Optional[str] = None) -> Optional[SessionStats]:
        return await self._get_stats("patient", user_id)

    async def get_counselor_session_stats(self, user_id: Optional[str] = None) -> Optional[SessionStats]:
        return await self._get_stats("counselor", user_id)

    async def _get_stats(self, role: str, user_id: Optional[str]) -> Optional[SessionStats]:
        params = {"role": role}
        if user_id:
            params["userId"] = user_id
        data = await self.client.get(f"{self.base_path}/stats", params=params)
        row = extract(data, "stats")
        if not row:
            return None
        return parse_row(row, SessionStats.from_row)
