"""
Access token decoding for the hosted auth service's session tokens.
"""
import logging
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from carebridge.core.config import settings
from carebridge.core.exceptions import ApiError

logger = logging.getLogger(__name__)


class JWTHandler:
    """Reads claims from access tokens, verifying them when a secret is configured."""

    def __init__(self, secret_key: Optional[str] = None, algorithm: Optional[str] = None):
        self.secret_key = secret_key if secret_key is not None else settings.jwt_secret_key
        self.algorithm = algorithm or settings.jwt_algorithm

    def decode_token(self, token: str) -> Dict[str, Any]:
        """Decode and, if possible, verify an access token.

        Raises ``ApiError`` (401) when the token is invalid or expired.
        """
        try:
            if self.secret_key:
                return jwt.decode(
                    token,
                    self.secret_key,
                    algorithms=[self.algorithm],
                    options={"verify_aud": False},
                )
            return jwt.get_unverified_claims(token)
        except JWTError as e:
            logger.warning(f"Rejected access token: {e}")
            raise ApiError("Could not validate credentials", status_code=401)


# Global JWT handler instance
jwt_handler = JWTHandler()
