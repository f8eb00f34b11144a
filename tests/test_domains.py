"""
Unit tests for account key normalisation and personal domain filtering.
"""
from abm_engine.core.domains import (
    account_name_from_domain,
    is_personal_domain,
    normalize_account_key,
    normalize_domain_from_email,
    normalize_domain_from_url,
    resolve_account_key,
)


class TestPersonalDomains:
    def test_free_mail(self):
        assert is_personal_domain("gmail.com")
        assert is_personal_domain("Jane.Doe@Outlook.com")

    def test_business(self):
        assert not is_personal_domain("acme.space")

    def test_empty_or_non_string(self):
        assert not is_personal_domain("")
        assert not is_personal_domain(None)
        assert not is_personal_domain(42)


class TestNormalisation:
    def test_account_key(self):
        assert normalize_account_key("  Acme.Space ") == "acme.space"
        assert normalize_account_key(None) == ""

    def test_account_key_from_url_shaped_value(self):
        assert normalize_account_key("https://www.Acme.space/pricing") == "acme.space"
        assert normalize_account_key("www.orbital.io") == "orbital.io"
        assert normalize_account_key("http://gmail.com") == ""

    def test_account_key_from_email(self):
        assert normalize_account_key("Ops@Orbital.io") == "orbital.io"
        assert normalize_account_key("jane@gmail.com") == ""

    def test_domain_from_url(self):
        assert normalize_domain_from_url("https://www.Acme.space/pricing?x=1") == "acme.space"
        assert normalize_domain_from_url("acme.space/about") == "acme.space"
        assert normalize_domain_from_url("") is None

    def test_domain_from_email(self):
        assert normalize_domain_from_email("ops@orbital.io") == "orbital.io"
        assert normalize_domain_from_email("someone@gmail.com") is None
        assert normalize_domain_from_email("not-an-email") is None

    def test_resolve_prefers_website(self):
        assert resolve_account_key("https://orbital.io", "ops@other.com") == "orbital.io"
        assert resolve_account_key("https://gmail.com", "ops@other.com") == "other.com"
        assert resolve_account_key(None, None) is None

    def test_account_name(self):
        assert account_name_from_domain("acme.space") == "acme"
        assert account_name_from_domain("deep.orbit.co") == "deep orbit"
