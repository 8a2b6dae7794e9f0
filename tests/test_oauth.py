import pytest

from carebridge.utils.oauth import (
    build_fallback_html, is_onboarding_complete, onboarding_path,
    parse_oauth_fragment, redirect_base, safe_next_path,
)


def test_parse_fragment():
    tokens = parse_oauth_fragment("#access_token=abc&refresh_token=def&expires_in=3600&token_type=bearer&junk=1")

    assert tokens == {"access_token": "abc", "refresh_token": "def", "expires_in": 3600, "token_type": "bearer"}


def test_parse_fragment_error():
    tokens = parse_oauth_fragment("error=access_denied&error_description=User+cancelled")
    assert tokens["error_description"] == "User cancelled"


@pytest.mark.parametrize("metadata", [
    {"onboarding_completed": True},
    {"onboardingCompleted": "Yes"},
    {"onboarding_complete": 1},
    {"onboarding": {"isComplete": True}},
    {"onboarding_completed_at": "2024-05-01T12:00:00Z"},
])
def test_metadata_flags_complete_onboarding(metadata):
    assert is_onboarding_complete("patient", metadata)


def test_false_flag_is_not_complete():
    assert not is_onboarding_complete("patient", {"onboarding_completed": "false"})


def test_counselor_approval():
    assert is_onboarding_complete("counselor", {"approval_status": "approved"})
    assert is_onboarding_complete("counselor", {}, {"approval_status": "approved"})
    assert is_onboarding_complete("counselor", {}, {"approval_status": "pending", "approval_reviewed_at": "2024-05-01"})
    assert not is_onboarding_complete("counselor", {}, {"approval_status": "rejected", "approval_reviewed_at": "2024-05-01"})
    assert not is_onboarding_complete("counselor", {}, None)


def test_patient_profile_requirements():
    contact = {"contact_phone": "555-0100"}
    assert is_onboarding_complete("patient", {}, {**contact, "treatment_stage": "recovery"})
    assert is_onboarding_complete("patient", {"emergency_contact_name": "Sam"}, contact)
    assert not is_onboarding_complete("patient", {}, {"treatment_stage": "recovery"})
    assert not is_onboarding_complete("patient", {}, contact)


def test_onboarding_path():
    assert onboarding_path("counselor") == "/onboarding/counselor"
    assert onboarding_path("patient") == "/onboarding/patient"
    assert onboarding_path("admin") == "/onboarding/patient"


@pytest.mark.parametrize("value,expected", [
    ("/dashboard", "/dashboard"),
    (None, "/"),
    ("https://evil.example", "/"),
    ("//evil.example", "/"),
])
def test_safe_next_path(value, expected):
    assert safe_next_path(value) == expected


def test_redirect_base():
    assert redirect_base("http://localhost:8000", "app.example.com", production=True) == "https://app.example.com"
    assert redirect_base("http://localhost:8000", "app.example.com", production=False) == "http://localhost:8000"
    assert redirect_base("http://localhost:8000/", None, production=True) == "http://localhost:8000"
    assert redirect_base("http://localhost:8000", "app.example.com", True, site_url="https://care.example.org/") == "https://care.example.org"


def test_fallback_html_embeds_paths_as_js_strings():
    html = build_fallback_html("rcr.oauth.payload", "/auth/callback/loading", "/auth/auth-code-error")

    assert 'var storageKey = "rcr.oauth.payload";' in html
    assert 'var loadingPath = "/auth/callback/loading";' in html
    assert "sessionStorage.setItem" in html
