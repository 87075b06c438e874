import pytest

from aisentinel.client.backup import SessionBackup
from aisentinel.client.extractor import TokenExtractor, TokenSource, scrub_url

BASE = "http://localhost:5000"


@pytest.fixture
def extractor():
    return TokenExtractor()


def test_auth_token_wins_over_every_other_source(extractor):
    url = f"{BASE}/?auth_token=prod-A&session_token=prod-session-B&backup-session=C&direct-session=true"
    result = extractor.extract(url, cookie_token="prod-cookie", backup=SessionBackup(session_token="prod-D"))

    assert result.candidate.token == "prod-A"
    assert result.candidate.source is TokenSource.AUTH_TOKEN_PARAM


def test_hyphenated_auth_token_param_is_accepted(extractor):
    result = extractor.extract(f"{BASE}/chat?auth-token=prod-xyz")
    assert result.candidate.token == "prod-xyz"
    assert result.candidate.source is TokenSource.AUTH_TOKEN_PARAM


def test_session_token_beats_backup_and_cookie(extractor):
    url = f"{BASE}/?session_token=prod-session-B&backup-session=C"
    result = extractor.extract(url, cookie_token="prod-cookie")

    assert result.candidate.token == "prod-session-B"
    assert result.candidate.source is TokenSource.SESSION_PARAM


def test_short_session_param_name(extractor):
    result = extractor.extract(f"{BASE}/?session=prod-session-1")
    assert result.candidate.source is TokenSource.SESSION_PARAM


def test_token_without_expected_prefix_falls_through(extractor):
    url = f"{BASE}/?auth_token=dev-A&session_token=prod-B&backup-session=C"
    result = extractor.extract(url)

    assert result.candidate.token == "C"
    assert result.candidate.source is TokenSource.BACKUP_PARAM


def test_direct_session_restores_backup(extractor):
    backup = SessionBackup(session_token="prod-session-saved", email="a@x.com")
    result = extractor.extract(f"{BASE}/?direct-session=true", cookie_token="prod-cookie", backup=backup)

    assert result.candidate.token == "prod-session-saved"
    assert result.candidate.source is TokenSource.DIRECT_SESSION


def test_direct_session_without_backup_falls_back_to_cookie(extractor):
    result = extractor.extract(f"{BASE}/?direct-session=true", cookie_token="prod-cookie")
    assert result.candidate.source is TokenSource.COOKIE


def test_cookie_is_the_last_resort(extractor):
    result = extractor.extract(f"{BASE}/dashboard", cookie_token="prod-cookie")

    assert result.candidate.token == "prod-cookie"
    assert result.candidate.source is TokenSource.COOKIE
    assert result.consumed == ()


def test_nothing_found(extractor):
    assert extractor.extract(f"{BASE}/").candidate is None


def test_logout_suppresses_every_token(extractor):
    result = extractor.extract(f"{BASE}/?logout=true&auth_token=prod-A", cookie_token="prod-cookie")

    assert result.logout is True
    assert result.candidate is None
    assert "auth_token" not in result.scrubbed_url


def test_enrichment_hints_are_parsed(extractor):
    url = f"{BASE}/?session_token=prod-session-1&verified_email=A@X.com&role_level=999&company_name=Acme&company_id=7&verified=true&save-account=1"
    result = extractor.extract(url)

    assert result.email == "A@X.com"
    assert result.role_level == 999
    assert result.company_name == "Acme"
    assert result.company_id == 7
    assert result.verified is True
    assert result.save_account is True


def test_non_numeric_hints_are_ignored(extractor):
    result = extractor.extract(f"{BASE}/?role_level=admin&company_id=")
    assert result.role_level is None
    assert result.company_id is None


def test_scrub_removes_session_params_and_keeps_the_rest():
    url = f"{BASE}/chat?tab=2&auth_token=prod-A&save-account=true&q=hello#top"
    scrubbed, removed = scrub_url(url)

    assert scrubbed == f"{BASE}/chat?tab=2&q=hello#top"
    assert removed == ("auth_token", "save-account")


def test_scrub_removes_params_even_when_their_rule_did_not_fire(extractor):
    result = extractor.extract(f"{BASE}/?auth_token=dev-A&email=a@x.com")

    assert result.candidate is None
    assert result.scrubbed_url == f"{BASE}/"
    assert set(result.consumed) == {"auth_token", "email"}


def test_scrub_leaves_clean_urls_untouched():
    assert scrub_url(f"{BASE}/chat?tab=2") == (f"{BASE}/chat?tab=2", ())


def test_reprocessing_a_scrubbed_url_is_a_no_op(extractor):
    first = extractor.extract(f"{BASE}/?auth_token=prod-abc123&save-account=true")
    second = extractor.extract(first.scrubbed_url)

    assert second.candidate is None
    assert second.consumed == ()
    assert second.scrubbed_url == first.scrubbed_url


def test_custom_rule_order():
    reversed_rules = tuple(reversed(TokenExtractor().rules))
    result = TokenExtractor(reversed_rules).extract(f"{BASE}/?auth_token=prod-A", cookie_token="prod-cookie")
    assert result.candidate.source is TokenSource.COOKIE
