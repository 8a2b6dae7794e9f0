"""
Helpers for the OAuth callback: fragment parsing, onboarding checks and
redirect targets.
"""
import json
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl

ONBOARDING_FLAG_KEYS = (
    "onboarding_completed",
    "onboardingCompleted",
    "onboarding_complete",
    "has_completed_onboarding",
)
ONBOARDING_NESTED_KEYS = ("completed", "isComplete", "is_completed")
ONBOARDING_TIMESTAMP_KEYS = ("onboarding_completed_at", "onboardingCompletedAt")
TRUTHY_STRINGS = ("true", "1", "yes", "completed")

FRAGMENT_KEYS = (
    "access_token",
    "refresh_token",
    "expires_in",
    "expires_at",
    "token_type",
    "provider_token",
    "provider_refresh_token",
    "error",
    "error_description",
)


def parse_oauth_fragment(fragment: str) -> Dict[str, Any]:
    """Parse an implicit-flow URL fragment (``#access_token=...&...``).

    Unknown keys are dropped; ``expires_in``/``expires_at`` become ints.
    """
    values = dict(parse_qsl(fragment.lstrip("#"), keep_blank_values=False))
    result: Dict[str, Any] = {}
    for key in FRAGMENT_KEYS:
        if key not in values:
            continue
        value: Any = values[key]
        if key in ("expires_in", "expires_at"):
            try:
                value = int(value)
            except ValueError:
                continue
        result[key] = value
    return result


def _first_present(mapping: Dict[str, Any], keys) -> Any:
    for key in keys:
        if mapping.get(key) is not None:
            return mapping[key]
    return None


def _is_truthy_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_STRINGS
    if isinstance(value, (int, float)):
        return value == 1
    return False


def _onboarding_flag(metadata: Dict[str, Any]) -> Any:
    flag = _first_present(metadata, ONBOARDING_FLAG_KEYS)
    if flag is None and isinstance(metadata.get("onboarding"), dict):
        flag = _first_present(metadata["onboarding"], ONBOARDING_NESTED_KEYS)
    return flag


def _has_any(*values: Any) -> bool:
    return any(bool(v) for v in values)


def is_onboarding_complete(
    role: str,
    metadata: Optional[Dict[str, Any]],
    profile: Optional[Dict[str, Any]] = None,
) -> bool:
    """
    Decide whether a signed-in user has finished onboarding.

    Args:
        role: ``patient`` or ``counselor`` (anything else only uses the flags)
        metadata: the auth user's metadata
        profile: the user's ``profiles`` row, if any. A counselor row may carry
            ``has_counselor_profile`` when a counselor profile exists.
    """
    metadata = metadata or {}

    if _is_truthy_flag(_onboarding_flag(metadata)):
        return True
    if _first_present(metadata, ONBOARDING_TIMESTAMP_KEYS):
        return True

    if role == "counselor":
        if (metadata.get("approvalStatus") or metadata.get("approval_status")) == "approved":
            return True
        if not profile:
            return False

        approval_status = profile.get("approval_status")
        if approval_status == "approved" or profile.get("has_counselor_profile"):
            return True
        profile_metadata = profile.get("metadata") or {}
        if _first_present(profile_metadata, ONBOARDING_FLAG_KEYS[:3]) is True:
            return True
        if _first_present(profile_metadata, ONBOARDING_TIMESTAMP_KEYS):
            return True
        # Reviewed (even if still pending) means the form was submitted
        return bool(profile.get("approval_reviewed_at")) and approval_status != "rejected"

    if role == "patient" and profile:
        profile_metadata = profile.get("metadata") or {}
        has_treatment_info = _has_any(
            profile.get("treatment_stage"),
            profile_metadata.get("treatmentStage"),
            profile_metadata.get("treatment_stage"),
            profile_metadata.get("diagnosis"),
            profile_metadata.get("cancerType"),
            profile_metadata.get("cancer_type"),
        )
        has_contact_info = _has_any(
            profile.get("contact_phone"),
            metadata.get("contactPhone"),
            metadata.get("contact_phone"),
            metadata.get("phoneNumber"),
            metadata.get("phone_number"),
        )
        has_emergency_contact = _has_any(
            profile.get("emergency_contact_name"),
            profile.get("emergency_contact_phone"),
            metadata.get("emergencyContactName"),
            metadata.get("emergency_contact_name"),
            metadata.get("emergencyContactPhone"),
            metadata.get("emergency_contact_phone"),
        )
        return has_contact_info and (has_treatment_info or has_emergency_contact)

    return False


def onboarding_path(role: Optional[str]) -> str:
    if role == "counselor":
        return "/onboarding/counselor"
    return "/onboarding/patient"


def safe_next_path(next_path: Optional[str]) -> str:
    """Only same-site absolute paths are allowed as post-login targets."""
    if not next_path or not next_path.startswith("/") or next_path.startswith("//"):
        return "/"
    return next_path


def redirect_base(
    origin: str,
    forwarded_host: Optional[str],
    production: bool,
    site_url: Optional[str] = None,
) -> str:
    """A configured site URL wins over the forwarded host and the request origin."""
    if site_url:
        return site_url.rstrip("/")
    if production and forwarded_host:
        return f"https://{forwarded_host}"
    return origin.rstrip("/")


def build_fallback_html(storage_key: str, loading_path: str, error_path: str) -> str:
    """
    Page returned when the provider redirected without a code.

    Tokens of the implicit flow live in the URL fragment, which never reaches
    the server; the script stores it in sessionStorage and forwards the
    browser to the loading page with the same query string.
    """
    return f"""<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="UTF-8" />
    <meta http-equiv="refresh" content="3;url=/signin" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0" />
    <title>Redirecting…</title>
  </head>
  <body>
    <script>
      (function() {{
        var search = window.location.search || '';
        var hash = window.location.hash ? window.location.hash.substring(1) : '';
        var storageKey = {json.dumps(storage_key)};
        var loadingPath = {json.dumps(loading_path)};
        var errorPath = {json.dumps(error_path)};

        try {{
          if (hash) {{
            sessionStorage.setItem(storageKey, hash);
          }} else {{
            sessionStorage.removeItem(storageKey);
          }}
        }} catch (err) {{
          window.location.replace(errorPath + '?error=' + encodeURIComponent('We could not store your sign-in details. Please try again.'));
          return;
        }}

        window.location.replace(loadingPath + search);
      }})();
    </script>
    <noscript>
      JavaScript is required to finish signing you in. Please enable JavaScript and try again.
    </noscript>
  </body>
</html>
"""
