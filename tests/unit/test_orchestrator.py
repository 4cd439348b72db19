from pathlib import Path

import pytest

from meroshare_ipo.core.errors import ConfigurationError
from meroshare_ipo.core.orchestrator import PAGE_CLOSED_MESSAGE, IpoAutomation, RunOutcome, RunReport
from meroshare_ipo.notify import RecordingNotifier

from fakes import ACCOUNT, BANK, DETAILS_EXPENSIVE, build_portal


def run(page, settings, tmp_path, apply=True):
    notifier = RecordingNotifier()
    report = IpoAutomation(page, settings, notifier, artifacts_dir=tmp_path).run(apply=apply)
    return report, notifier


def test_successful_application(settings, tmp_path):
    page = build_portal()
    report, notifier = run(page, settings, tmp_path)

    assert report.ok
    assert report.outcome == RunOutcome.application_submitted
    assert report.application_status == "success"
    assert notifier.kinds == ["ipo_available", "application_status"]
    assert notifier.sent[0].payload["company_name"] == "Himalayan Hydropower Ltd."
    assert notifier.sent[1].payload == {"status": "success", "message": "Share has been applied successfully."}

    assert page.elements["select#selectBank"].selected == BANK
    assert page.elements["select#accountNumber"].selected == ACCOUNT
    assert page.elements["input#appliedKitta"].value == "10"
    assert page.elements["input#crnNumber"].value == "CRN-778899"
    assert page.elements["input#disclaimer"].checked
    assert page.elements["input#transactionPIN"].value == "1234"
    assert [c["chain"] for c in report.chains] == ["login", "discovery", "application"]


def test_no_open_issue_sends_ipo_not_found(settings, tmp_path):
    report, notifier = run(build_portal(issue_open=False), settings, tmp_path)

    assert report.ok
    assert report.outcome == RunOutcome.ipo_not_found
    assert report.failed_step == "locate-apply-action"
    assert notifier.kinds == ["ipo_not_found"]


def test_terms_over_threshold_go_to_manual_review(settings, tmp_path):
    page = build_portal(details=DETAILS_EXPENSIVE)
    report, notifier = run(page, settings, tmp_path)

    assert report.outcome == RunOutcome.open_for_review
    assert notifier.kinds == ["open_for_review"]
    payload = notifier.sent[0].payload
    assert payload["company_name"] == "Himalayan Hydropower Ltd."
    assert payload["share_value_per_unit"] == 1150.0
    assert payload["min_unit"] == 10.0
    # application form never opened
    assert "select#selectBank" not in page.elements


def test_page_closed_after_submit_reports_unknown(settings, tmp_path):
    report, notifier = run(build_portal(submit_result="close"), settings, tmp_path)

    assert report.outcome == RunOutcome.application_submitted
    assert report.application_status == "unknown"
    assert notifier.kinds[-1] == "application_status"
    assert notifier.sent[-1].payload["status"] == "unknown"


def test_portal_error_after_submit_reports_failed(settings, tmp_path):
    report, notifier = run(build_portal(submit_result="error"), settings, tmp_path)

    assert not report.ok
    assert report.application_status == "failed"
    assert notifier.sent[-1].payload == {"status": "failed", "message": "Invalid transaction PIN"}


def test_page_closed_mid_flow_is_unknown_status(settings, tmp_path):
    page = build_portal()
    # the browser goes away when "My ASBA" is clicked
    login_button = page.elements['button[type="submit"]']
    original = login_button.on_click

    def _login_then_close_on_asba(p):
        original(p)
        p.elements['a:has-text("My ASBA")'].on_click = lambda q: q.close()

    login_button.on_click = _login_then_close_on_asba
    report, notifier = run(page, settings, tmp_path)

    assert report.outcome == RunOutcome.page_unavailable
    assert report.application_status == "unknown"
    assert notifier.sent[-1].payload == {"status": "unknown", "message": PAGE_CLOSED_MESSAGE}
    assert report.failed_step == "locate-apply-action"
    assert not report.ok


def test_login_failure_takes_screenshot_with_credentials_cleared(settings, tmp_path):
    page = build_portal(login_ok=False)
    report, notifier = run(page, settings, tmp_path)

    assert not report.ok
    assert report.outcome == RunOutcome.login_failed
    assert notifier.kinds == ["error"]
    assert notifier.sent[0].payload["message"] == "Login failed: Invalid username or password"
    assert report.screenshot and Path(report.screenshot).exists()
    assert page.elements["input#username"].value == ""
    assert page.elements["input#password"].value == ""


def test_no_apply_stops_after_ipo_available(settings, tmp_path):
    page = build_portal()
    report, notifier = run(page, settings, tmp_path, apply=False)

    assert report.outcome == RunOutcome.ipo_available
    assert notifier.kinds == ["ipo_available"]
    assert "select#selectBank" not in page.elements


def test_missing_applicant_details_skip_application(make_settings, tmp_path):
    report, notifier = run(build_portal(), make_settings(MEROSHARE_CRN_NO=""), tmp_path)

    assert report.outcome == RunOutcome.ipo_available
    assert notifier.kinds == ["ipo_available"]


def test_missing_credentials_is_a_configuration_error(make_settings, tmp_path):
    with pytest.raises(ConfigurationError):
        run(build_portal(), make_settings(MEROSHARE_PASSWORD=""), tmp_path)


def test_page_closed_by_login_click_is_not_reported_as_login_failure(settings, tmp_path):
    page = build_portal()
    page.elements['button[type="submit"]'].on_click = lambda p: p.close()
    report, notifier = run(page, settings, tmp_path)

    assert report.outcome == RunOutcome.page_unavailable
    assert report.failed_step == "detect-post-login-state"
    assert report.screenshot is None
    assert page.screenshots == []
    assert notifier.sent[-1].payload == {"status": "unknown", "message": PAGE_CLOSED_MESSAGE}
    assert not report.ok


@pytest.mark.parametrize(
    "failed_step, ok",
    [
        ("submit-login", False),
        ("relocate-apply-action", False),
        ("fill-application-form", False),
        ("submit-application", True),
        ("check-final-status", True),
    ],
)
def test_closed_page_counts_as_completed_only_after_submit(failed_step, ok):
    report = RunReport(
        outcome=RunOutcome.page_unavailable,
        failed_step=failed_step,
        application_status="unknown",
    )
    assert report.ok is ok
    assert report.to_dict()["ok"] is ok
