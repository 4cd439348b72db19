import pytest

from meroshare_ipo.core.catalog import SelectorCatalog
from meroshare_ipo.core.errors import PageUnavailable
from meroshare_ipo.core.heuristics import (
    assess_application_status,
    assess_login_state,
    check_allotment_terms,
    normalize_number,
    parse_allotment_terms,
    parse_issue_row,
)
from meroshare_ipo.core.models import AllotmentTerms, AllotmentThresholds
from meroshare_ipo.core.notifications import ApplicationStatus
from meroshare_ipo.core.outcome import Failure, FailureKind, Success

from fakes import DASHBOARD_URL, LOGIN_URL, FakeElement, FakePage

CATALOG = SelectorCatalog()


# ---------- login state ----------


def test_url_change_wins_over_error_marker():
    page = FakePage({".toast-error": FakeElement("Invalid credentials")}, url=DASHBOARD_URL)
    out = assess_login_state(page, CATALOG, timeout_ms=5)

    assert isinstance(out, Success)
    assert out.data["login_check"] == "url_changed"
    assert page.probes == []


def test_success_marker_wins_over_error_marker():
    page = FakePage(
        {'a:has-text("Logout")': FakeElement("Logout"), ".toast-error": FakeElement("stale error")},
        url=LOGIN_URL,
    )
    out = assess_login_state(page, CATALOG, timeout_ms=5)

    assert isinstance(out, Success)
    assert out.data["marker"] == 'a:has-text("Logout")'


def test_error_marker_text_becomes_reason():
    page = FakePage({".alert-danger": FakeElement("  Invalid username or password ")}, url=LOGIN_URL)
    out = assess_login_state(page, CATALOG, timeout_ms=5)

    assert isinstance(out, Failure)
    assert out.kind == FailureKind.login_failed
    assert out.reason == "Login failed: Invalid username or password"


def test_no_signal_means_still_on_login_page():
    out = assess_login_state(FakePage(url=LOGIN_URL), CATALOG, timeout_ms=5)

    assert isinstance(out, Failure)
    assert out.reason == "Login failed: still on login page"


def test_page_closed_during_login_check_is_not_a_login_failure():
    page = FakePage(url=LOGIN_URL)
    page.close()

    with pytest.raises(PageUnavailable):
        assess_login_state(page, CATALOG, timeout_ms=5)


# ---------- numbers and terms ----------


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Rs. 1,000.00", 1000.0),
        (" 100 ", 100.0),
        ("NPR 250", 250.0),
        ("10 kitta", 10.0),
        ("N/A", None),
        (None, None),
    ],
)
def test_normalize_number(text, expected):
    assert normalize_number(text) == expected


def test_parse_allotment_terms_from_detail_text():
    text = "Issue Manager: NIBL Ace\nShare Value Per Unit : Rs. 100.00\nMinimum Unit: 10\nMax Unit: 1,00,000"
    terms = parse_allotment_terms(text)

    assert terms.share_value_per_unit == 100.0
    assert terms.min_unit == 10.0
    assert terms.max_unit == 100000.0


def test_values_equal_to_thresholds_pass_when_inclusive():
    out = check_allotment_terms(
        AllotmentTerms(share_value_per_unit=100, min_unit=10),
        AllotmentThresholds(max_value_per_unit=100, max_min_unit=10, inclusive=True),
    )
    assert isinstance(out, Success)
    assert out.data["share_value_per_unit"] == 100


def test_values_equal_to_thresholds_fail_when_exclusive():
    out = check_allotment_terms(
        AllotmentTerms(share_value_per_unit=100, min_unit=10),
        AllotmentThresholds(max_value_per_unit=100, max_min_unit=10, inclusive=False),
    )
    assert isinstance(out, Failure)
    assert out.kind == FailureKind.validation_failed
    assert "Share value per unit 100 is not < 100" in out.reason
    assert "Min unit 10 is not < 10" in out.reason


def test_expensive_share_is_a_validation_failure_with_scraped_values():
    out = check_allotment_terms(
        parse_allotment_terms("Share Value Per Unit: Rs. 1,150.00\nMin Unit: 10"),
        AllotmentThresholds(),
    )
    assert isinstance(out, Failure)
    assert out.kind == FailureKind.validation_failed
    assert out.data["share_value_per_unit"] == 1150.0
    assert out.data["min_unit"] == 10.0


def test_unreadable_terms_are_a_validation_failure():
    out = check_allotment_terms(parse_allotment_terms("nothing useful here"), AllotmentThresholds())
    assert isinstance(out, Failure)
    assert out.kind == FailureKind.validation_failed
    assert out.reason.startswith("Could not read")


def test_parse_issue_row():
    issue = parse_issue_row("Apply\nHimalayan Hydropower Ltd.\nIPO\nOrdinary Shares")
    assert issue.company_name == "Himalayan Hydropower Ltd."
    assert issue.share_type == "IPO"
    assert issue.share_group == "Ordinary Shares"


# ---------- application status ----------


def test_closed_page_after_submit_is_unknown():
    page = FakePage()
    page.close()
    status, message = assess_application_status(page, CATALOG, timeout_ms=5)

    assert status == ApplicationStatus.unknown
    assert "may or may not" in message


def test_success_and_error_toasts():
    ok_page = FakePage({".toast-success": FakeElement("Share has been applied successfully.")})
    bad_page = FakePage({".toast-error": FakeElement("Invalid transaction PIN")})

    assert assess_application_status(ok_page, CATALOG, timeout_ms=5) == (
        ApplicationStatus.success,
        "Share has been applied successfully.",
    )
    assert assess_application_status(bad_page, CATALOG, timeout_ms=5) == (
        ApplicationStatus.failed,
        "Invalid transaction PIN",
    )


def test_no_confirmation_is_unknown():
    status, _ = assess_application_status(FakePage(), CATALOG, timeout_ms=5)
    assert status == ApplicationStatus.unknown
