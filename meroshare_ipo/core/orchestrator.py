# meroshare_ipo/core/orchestrator.py
from __future__ import annotations

"""IPO run orchestration
-----------------------
Chains the workflow steps in three phases (login, discovery, application),
stops at the first failure, and decides which notification that failure
(or the final result) maps to. Works on any page handle, so the browser
lifecycle stays in the engine.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from playwright.sync_api import Error as PlaywrightError

from meroshare_ipo.core import notifications, steps
from meroshare_ipo.core.catalog import SelectorCatalog
from meroshare_ipo.core.chain import ChainResult, StepChain, StepContext
from meroshare_ipo.core.errors import page_is_closed
from meroshare_ipo.core.notifications import ApplicationStatus, Notification
from meroshare_ipo.core.outcome import Failure, FailureKind
from meroshare_ipo.locators.actions import ElementActions
from meroshare_ipo.locators.locator import Found, locate
from meroshare_ipo.notify.base import Notifier, NullNotifier
from meroshare_ipo.utils.config import Settings, get_settings
from meroshare_ipo.utils.logger import get_logger

PAGE_CLOSED_MESSAGE = "Page closed unexpectedly during automation. IPO may or may not have been submitted."
# steps after which a closed page may mean the application went through
POST_SUBMIT_STEPS = ("submit-application", "check-final-status")


class RunOutcome(str, Enum):
    login_failed = "login_failed"
    ipo_not_found = "ipo_not_found"
    open_for_review = "open_for_review"
    ipo_available = "ipo_available"
    application_submitted = "application_submitted"
    page_unavailable = "page_unavailable"
    failed = "failed"


# ---------- Chains ----------


def login_chain() -> StepChain:
    return (
        StepChain("login")
        .then("select-depository", steps.select_depository)
        .then("fill-credentials", steps.fill_credentials)
        .then("submit-login", steps.submit_login)
        .then("detect-post-login-state", steps.detect_post_login_state)
    )


def discovery_chain() -> StepChain:
    return (
        StepChain("discovery")
        .then("open-my-asba", steps.open_my_asba)
        .then("locate-apply-action", steps.locate_apply_action)
        .then("open-share-details", steps.open_share_details)
        .then("verify-allotment-terms", steps.verify_allotment_terms)
        .then("return-to-asba", steps.return_to_asba)
        .then("relocate-apply-action", steps.relocate_apply_action)
    )


def application_chain() -> StepChain:
    return (
        StepChain("application")
        .then("open-application-form", steps.open_application_form)
        .then("fill-application-form", steps.fill_application_form)
        .then("submit-application", steps.submit_application)
        .then("check-final-status", steps.check_final_status)
    )


# ---------- Report ----------


@dataclass
class RunReport:
    outcome: RunOutcome = RunOutcome.failed
    reason: Optional[str] = None
    failed_step: Optional[str] = None
    application_status: Optional[str] = None
    issue: Optional[Dict[str, Any]] = None
    terms: Optional[Dict[str, Any]] = None
    screenshot: Optional[str] = None
    chains: List[Dict[str, Any]] = field(default_factory=list)
    notifications: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        if self.outcome in (RunOutcome.login_failed, RunOutcome.failed):
            return False
        if self.outcome == RunOutcome.page_unavailable and self.failed_step not in POST_SUBMIT_STEPS:
            return False
        return self.application_status != ApplicationStatus.failed.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "outcome": self.outcome.value,
            "reason": self.reason,
            "failed_step": self.failed_step,
            "application_status": self.application_status,
            "issue": self.issue,
            "terms": self.terms,
            "screenshot": self.screenshot,
            "chains": self.chains,
            "notifications": self.notifications,
        }


# ---------- Orchestrator ----------


class IpoAutomation:
    """Drives one MeroShare page through login, IPO discovery and application."""

    def __init__(
        self,
        page: Any,
        settings: Optional[Settings] = None,
        notifier: Optional[Notifier] = None,
        catalog: Optional[SelectorCatalog] = None,
        artifacts_dir: Optional[Path] = None,
    ) -> None:
        self.page = page
        self.settings = settings or get_settings()
        self.notifier = notifier or NullNotifier()
        self.catalog = catalog or SelectorCatalog()
        self.artifacts_dir = artifacts_dir
        self.log = get_logger(__name__)

    def build_context(self) -> StepContext:
        s = self.settings
        return StepContext(
            page=self.page,
            actions=ElementActions(
                self.page,
                per_candidate_timeout_ms=s.PER_CANDIDATE_TIMEOUT_MS,
                overall_timeout_ms=s.OVERALL_LOCATE_TIMEOUT_MS,
            ),
            catalog=self.catalog,
            credentials=s.credentials(),
            applicant=s.applicant(),
            thresholds=s.thresholds(),
            settle_ms=s.STEP_SETTLE_MS,
        )

    # ---------- Public API ----------

    def login(self, ctx: Optional[StepContext] = None) -> ChainResult:
        return login_chain().run(ctx or self.build_context())

    def run(self, *, apply: bool = True) -> RunReport:
        ctx = self.build_context()
        report = RunReport()

        login = self.login(ctx)
        report.chains.append(login.to_dict())
        if not login.ok:
            if login.failure.kind != FailureKind.page_unavailable:
                report.screenshot = self._capture_login_failure()
            self._route_failure(ctx, login, report)
            return report

        discovery = discovery_chain().run(ctx, initial=login.outcome)
        report.chains.append(discovery.to_dict())
        report.issue = ctx.state.get("issue")
        report.terms = self._terms(ctx.state)
        if not discovery.ok:
            self._route_failure(ctx, discovery, report)
            return report

        self._notify(report, notifications.ipo_available(report.issue or {}))
        report.outcome = RunOutcome.ipo_available

        if not apply:
            self.log.info("IPO available; apply disabled for this run")
            return report
        if ctx.applicant is None:
            self.log.info("IPO available; application details not configured, skipping apply")
            return report

        application = application_chain().run(ctx, initial=discovery.outcome)
        report.chains.append(application.to_dict())
        if not application.ok:
            self._route_failure(ctx, application, report)
            return report

        status = ApplicationStatus(ctx.state.get("application_status", ApplicationStatus.unknown.value))
        message = ctx.state.get("status_message") or "IPO application process completed"
        report.outcome = RunOutcome.application_submitted
        report.application_status = status.value
        report.reason = message
        self._notify(report, notifications.application_status(status, message))
        return report

    # ---------- Internals ----------

    def _notify(self, report: RunReport, notification: Notification) -> None:
        report.notifications.append(notification.kind.value)
        self.notifier.send(notification)

    @staticmethod
    def _terms(state: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        keys = ("share_value_per_unit", "min_unit", "max_unit")
        if not any(k in state for k in keys):
            return None
        return {k: state.get(k) for k in keys}

    def _route_failure(self, ctx: StepContext, result: ChainResult, report: RunReport) -> None:
        failure: Failure = result.failure
        report.reason = failure.reason
        report.failed_step = result.failed_step

        if failure.kind == FailureKind.page_unavailable:
            report.outcome = RunOutcome.page_unavailable
            report.application_status = ApplicationStatus.unknown.value
            self._notify(report, notifications.application_status(ApplicationStatus.unknown, PAGE_CLOSED_MESSAGE))
        elif failure.kind == FailureKind.ipo_not_found:
            report.outcome = RunOutcome.ipo_not_found
            self._notify(report, notifications.ipo_not_found())
        elif failure.kind == FailureKind.validation_failed:
            report.outcome = RunOutcome.open_for_review
            report.terms = {k: failure.data.get(k) for k in ("share_value_per_unit", "min_unit", "max_unit")}
            issue = ctx.state.get("issue") or {}
            self._notify(
                report,
                notifications.open_for_review(
                    issue.get("company_name"),
                    failure.data.get("share_value_per_unit"),
                    failure.data.get("min_unit"),
                    failure.reason,
                ),
            )
        elif failure.kind == FailureKind.login_failed:
            report.outcome = RunOutcome.login_failed
            self._notify(report, notifications.error(failure.reason))
        else:
            report.outcome = RunOutcome.failed
            self._notify(report, notifications.error(f"{result.failed_step}: {failure.reason}"))

    def _capture_login_failure(self) -> Optional[str]:
        """Full-page screenshot of the failed login, with the credential fields emptied first."""
        if self.artifacts_dir is None or page_is_closed(self.page):
            return None
        timeout = self.settings.PER_CANDIDATE_TIMEOUT_MS
        try:
            for chain in (self.catalog.password_field, self.catalog.username_field):
                found = locate(self.page, chain, per_candidate_timeout_ms=timeout)
                if isinstance(found, Found):
                    found.handle.fill("")
            path = Path(self.artifacts_dir) / "login-failure.png"
            path.parent.mkdir(parents=True, exist_ok=True)
            self.page.screenshot(path=str(path), full_page=True)
        except PlaywrightError as e:
            self.log.warning(f"Could not capture login failure screenshot: {e.message}")
            return None
        self.log.info(f"Saved login failure screenshot: {path}")
        return str(path)


__all__ = [
    "RunOutcome",
    "RunReport",
    "IpoAutomation",
    "login_chain",
    "discovery_chain",
    "application_chain",
    "PAGE_CLOSED_MESSAGE",
]
