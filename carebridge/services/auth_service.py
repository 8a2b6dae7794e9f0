"""
Authentication session lookup and OAuth code exchange.
"""
import logging
from typing import Any, Dict, Optional

from carebridge.core.exceptions import ApiError
from carebridge.schemas.auth import AuthSessionData, AuthUser
from carebridge.services.api_client import ApiClient, extract, parse_row
from carebridge.utils.jwt_handler import JWTHandler, jwt_handler

logger = logging.getLogger(__name__)


class AuthApi:
    """Typed wrapper over ``/api/auth``."""

    base_path = "/api/auth"

    def __init__(self, client: ApiClient):
        self.client = client

    async def get_current_user(self) -> AuthUser:
        data = await self.client.get(f"{self.base_path}/me")
        return parse_row(extract(data, "user"), AuthUser.from_row)

    async def exchange_code_for_session(self, code: str) -> Optional[AuthSessionData]:
        data = await self.client.post(f"{self.base_path}/oauth/exchange", json_body={"code": code})
        row = extract(data, "session")
        if not row:
            return None
        return parse_row(row, AuthSessionData.from_row)

    async def update_user_metadata(self, metadata: Dict[str, Any]) -> AuthUser:
        result = await self.client.put(f"{self.base_path}/profile", json_body={"metadata": metadata})
        return parse_row(extract(result, "user"), AuthUser.from_row)

    async def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Raw ``profiles`` row (snake_case) or None when the user has none."""
        try:
            data = await self.client.get(f"{self.base_path}/profiles/{user_id}")
        except ApiError as e:
            if e.status_code == 404:
                return None
            raise
        return extract(data, "profile") or None


class AuthSession:
    """
    Caches the signed-in user for one client.

    The user comes either from the access token claims or from
    ``GET /api/auth/me`` on first use.
    """

    def __init__(self, auth_api: AuthApi, user: Optional[AuthUser] = None):
        self.auth_api = auth_api
        self._user = user

    @classmethod
    def from_access_token(
        cls,
        auth_api: AuthApi,
        access_token: str,
        handler: Optional[JWTHandler] = None,
    ) -> "AuthSession":
        claims = (handler or jwt_handler).decode_token(access_token)
        if "sub" not in claims:
            raise ApiError("Invalid token payload", status_code=401)
        auth_api.client.set_access_token(access_token)
        return cls(auth_api, AuthUser.from_claims(claims))

    @property
    def user(self) -> Optional[AuthUser]:
        return self._user

    async def get_user(self, refresh: bool = False) -> AuthUser:
        if self._user is None or refresh:
            self._user = await self.auth_api.get_current_user()
            logger.debug(f"Resolved current user {self._user.id}")
        return self._user

    async def get_user_id(self) -> str:
        return (await self.get_user()).id

    def clear(self) -> None:
        self._user = None
