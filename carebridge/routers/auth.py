"""
OAuth callback router: code exchange, implicit-flow fallback and onboarding redirect.
"""
import logging
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from carebridge.core.config import settings
from carebridge.core.exceptions import CarebridgeError
from carebridge.schemas.auth import OAuthFragmentRequest, OAuthFragmentTokens
from carebridge.services.api_client import ApiClient
from carebridge.services.auth_service import AuthApi
from carebridge.utils.oauth import (
    build_fallback_html, is_onboarding_complete, onboarding_path,
    parse_oauth_fragment, redirect_base, safe_next_path,
)
from carebridge.utils.response_utils import error_response, success_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


def get_auth_api() -> AuthApi:
    """Dependency: auth API client bound to a fresh backend client."""
    return AuthApi(ApiClient())


def _origin(request: Request) -> str:
    return f"{request.url.scheme}://{request.url.netloc}"


def _redirect_with_error(origin: str, path: str, message: str) -> RedirectResponse:
    return RedirectResponse(f"{origin}{path}?error={quote(message, safe='')}")


@router.get("/callback", operation_id="oauth_callback")
async def oauth_callback(
    request: Request,
    code: Optional[str] = None,
    error: Optional[str] = None,
    error_description: Optional[str] = None,
    next_path: Optional[str] = Query(None, alias="next"),
    role: Optional[str] = None,
    auth_api: AuthApi = Depends(get_auth_api),
):
    """
    Finish an OAuth sign-in.

    Exchanges ``code`` for a session, sets the requested role on first
    sign-in and redirects either to ``next`` or to the onboarding page for
    the user's role. Without a code, returns a page that hands the URL
    fragment to the client-side loading page.
    """
    origin = _origin(request)

    if error:
        logger.error(f"OAuth provider error: {error} ({error_description})")
        return _redirect_with_error(origin, settings.oauth_error_path, error_description or error)

    if not auth_api.client.configured:
        logger.error("OAuth callback hit but the backend is not configured")
        return _redirect_with_error(
            origin,
            settings.oauth_loading_path,
            "OAuth is not configured. Please set API_BASE_URL and API_KEY in your environment variables.",
        )

    target = safe_next_path(next_path)

    if not code:
        html = build_fallback_html(
            settings.oauth_storage_key, settings.oauth_loading_path, settings.oauth_error_path
        )
        return HTMLResponse(html)

    try:
        session = await auth_api.exchange_code_for_session(code)
    except CarebridgeError as e:
        logger.error(f"Failed to exchange code for session: {e.message}")
        return _redirect_with_error(
            origin,
            settings.oauth_error_path,
            e.message or "Failed to complete authentication. Please try again.",
        )

    if session is None:
        logger.error("No session returned from code exchange")
        return _redirect_with_error(
            origin, settings.oauth_error_path, "Authentication session not created. Please try again."
        )

    auth_api.client.set_access_token(session.access_token)
    user = session.user
    metadata = dict(user.metadata)

    if role and metadata.get("role") in (None, "", "guest"):
        try:
            user = await auth_api.update_user_metadata({**metadata, "role": role})
            metadata = dict(user.metadata) or {**metadata, "role": role}
            logger.info(f"Set role {role} for user {user.id}")
        except CarebridgeError as e:
            logger.warning(f"Failed to update user role in metadata: {e.message}")

    user_role = metadata.get("role") or role or "patient"
    completed = is_onboarding_complete(user_role, metadata)
    if not completed:
        try:
            profile = await auth_api.get_profile(user.id)
        except CarebridgeError as e:
            logger.warning(f"Failed to load profile for onboarding check: {e.message}")
            profile = None
        completed = is_onboarding_complete(user_role, metadata, profile)

    redirect_path = target if completed else onboarding_path(user_role)
    base_url = redirect_base(
        origin,
        request.headers.get("x-forwarded-host"),
        settings.is_production,
        settings.site_url,
    )
    return RedirectResponse(f"{base_url}{redirect_path}")


@router.post("/callback/session", operation_id="oauth_fragment_session")
async def oauth_fragment_session(payload: OAuthFragmentRequest):
    """Parse implicit-flow tokens stored from the callback URL fragment."""
    parsed = parse_oauth_fragment(payload.fragment)

    if parsed.get("error"):
        return error_response(
            message=parsed.get("error_description") or parsed["error"],
            status_code=400,
        )
    if not parsed.get("access_token"):
        return error_response(message="Missing access token in callback fragment", status_code=400)

    tokens = OAuthFragmentTokens(**{k: v for k, v in parsed.items() if k in OAuthFragmentTokens.model_fields})
    return success_response(
        message="OAuth tokens parsed",
        data=tokens.model_dump(exclude_none=True),
    )
