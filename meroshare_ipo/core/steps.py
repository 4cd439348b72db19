# meroshare_ipo/core/steps.py
from __future__ import annotations

"""MeroShare workflow steps
--------------------------
Each step is `step(ctx, previous) -> Outcome` and only talks to the page
through the locator-backed ElementActions. Steps raise taxonomy errors for
missing elements and failed actions; the chain turns those into Failures.
"""

from typing import Iterable, Optional

from meroshare_ipo.core.chain import StepContext
from meroshare_ipo.core.errors import ActionFailed, PageUnavailable
from meroshare_ipo.core.heuristics import (
    assess_application_status,
    assess_login_state,
    check_allotment_terms,
    parse_allotment_terms,
    parse_issue_row,
)
from meroshare_ipo.core.outcome import Failure, FailureKind, Outcome, Success
from meroshare_ipo.locators.locator import CandidateLike, Found, NotFound
from meroshare_ipo.utils.logger import get_logger
from meroshare_ipo.utils.timing import measure

log = get_logger(__name__)


# ---------- Helpers ----------


def _click_if_found(ctx: StepContext, candidates: Iterable[CandidateLike], what: str) -> bool:
    found = ctx.actions.try_find(candidates)
    if isinstance(found, NotFound):
        return False
    ctx.actions.perform(what, found, lambda: found.handle.click())
    return True


def _fill_if_found(ctx: StepContext, candidates: Iterable[CandidateLike], text: str, what: str) -> bool:
    found = ctx.actions.try_find(candidates)
    if isinstance(found, NotFound):
        if ctx.page_closed():
            raise PageUnavailable(f"Page closed while looking for {what}")
        log.warning(f"No {what} matched (tried {len(found.tried_selectors)} selector(s))")
        return False

    def _do() -> None:
        found.handle.clear()
        found.handle.fill(text)

    ctx.actions.perform(what, found, _do)
    log.debug(f"Filled {what} using {found.matched_selector!r}")
    return True


def _wait_for_login_form(ctx: StepContext) -> None:
    # Readiness hint only; the field chains below do the real probing.
    ctx.actions.try_find(ctx.catalog.login_form_ready)


# ---------- Login ----------


@measure("select-depository")
def select_depository(ctx: StepContext, previous: Optional[Success]) -> Outcome:
    """
    Pick the DP. The portal renders a Select2 widget; a native <select> and
    Angular-style custom dropdowns are tried after it.
    """
    dp = ctx.credentials.dp if ctx.credentials else None
    if not dp:
        return Success({"dp_selected": False})

    a = ctx.actions
    _wait_for_login_form(ctx)

    container = a.try_find(ctx.catalog.depository_container)
    if isinstance(container, Found):
        a.perform("DP dropdown", container, lambda: container.handle.click())
        a.settle(ctx.settle_ms)
        if _click_if_found(ctx, ctx.catalog.render("depository_option", dp=dp), f'DP option "{dp}"'):
            log.info(f'Selected DP "{dp}" from Select2 dropdown')
            return Success({"dp_selected": True, "dp_widget": "select2"})

    native = a.try_find(ctx.catalog.depository_native_select)
    if isinstance(native, Found):
        try:
            a.perform("DP select", native, lambda: native.handle.select_option(label=dp))
        except ActionFailed as e:
            log.debug(f"Native DP select did not accept {dp!r}: {e}")
        else:
            log.info(f'Selected DP "{dp}" using {native.matched_selector!r}')
            return Success({"dp_selected": True, "dp_widget": "native"})

    dropdown = a.try_find(ctx.catalog.depository_custom_dropdown)
    if isinstance(dropdown, Found):
        a.perform("DP dropdown", dropdown, lambda: dropdown.handle.click())
        a.settle(ctx.settle_ms)
        if _click_if_found(ctx, ctx.catalog.render("depository_custom_option", dp=dp), f'DP option "{dp}"'):
            log.info(f'Selected DP "{dp}" from custom dropdown')
            return Success({"dp_selected": True, "dp_widget": "custom"})

    if ctx.page_closed():
        raise PageUnavailable("Page closed while selecting DP")
    return Failure(f"Could not select DP: {dp}", FailureKind.element_not_found, {"dp_selected": False})


@measure("fill-credentials")
def fill_credentials(ctx: StepContext, previous: Optional[Success]) -> Outcome:
    """Username and password are looked up independently; both must be filled."""
    creds = ctx.credentials
    if creds is None:
        return Failure("No credentials supplied", FailureKind.login_failed)

    _wait_for_login_form(ctx)
    username_filled = _fill_if_found(ctx, ctx.catalog.username_field, creds.username, "username field")
    password_filled = _fill_if_found(ctx, ctx.catalog.password_field, creds.password, "password field")

    data = {"username_filled": username_filled, "password_filled": password_filled}
    if not username_filled:
        return Failure("Could not find username field", FailureKind.element_not_found, data)
    if not password_filled:
        return Failure("Could not find password field", FailureKind.element_not_found, data)
    return Success(data)


def submit_login(ctx: StepContext, previous: Optional[Success]) -> Outcome:
    found = ctx.actions.click(ctx.catalog.login_button, "login button")
    ctx.actions.settle(ctx.settle_ms * 2)
    return Success({"login_submitted": True, "login_button": found.matched_selector})


def detect_post_login_state(ctx: StepContext, previous: Optional[Success]) -> Outcome:
    return assess_login_state(ctx.page, ctx.catalog, timeout_ms=ctx.actions.per_candidate_timeout_ms)


# ---------- My ASBA / discovery ----------


def _open_asba(ctx: StepContext) -> None:
    ctx.actions.click(ctx.catalog.my_asba_link, '"My ASBA" link')
    ctx.actions.settle(ctx.settle_ms * 2)
    # "Apply for Issue" is usually the default tab; click it only when present.
    if _click_if_found(ctx, ctx.catalog.apply_for_issue_tab, '"Apply for Issue" tab'):
        ctx.actions.settle(ctx.settle_ms)


def open_my_asba(ctx: StepContext, previous: Optional[Success]) -> Outcome:
    _open_asba(ctx)
    return Success({"asba_opened": True})


def return_to_asba(ctx: StepContext, previous: Optional[Success]) -> Outcome:
    _open_asba(ctx)
    return Success({"returned_to_asba": True})


def _read_issue(ctx: StepContext, row: Found) -> dict:
    text = ctx.actions.perform("issue row", row, lambda: row.handle.inner_text()) or ""
    return parse_issue_row(text).model_dump()


def _apply_button_in(ctx: StepContext, row: Found) -> Optional[Found]:
    button = ctx.actions.try_find(ctx.catalog.apply_button, scope=row.handle)
    if isinstance(button, Found):
        return button
    if ctx.page_closed():
        raise PageUnavailable("Page closed while looking for the Apply button")
    return None


def locate_apply_action(ctx: StepContext, previous: Optional[Success]) -> Outcome:
    """Find the first issue row that offers an Apply button and scrape its details."""
    row = ctx.actions.try_find(ctx.catalog.issue_row)
    if isinstance(row, NotFound):
        if ctx.page_closed():
            raise PageUnavailable("Page closed while looking for open issues")
        return Failure("No IPO open for application", FailureKind.ipo_not_found)

    # loose row candidates also match "Applied"/"Edit" rows
    if _apply_button_in(ctx, row) is None:
        return Failure("No IPO open for application", FailureKind.ipo_not_found)
    issue = _read_issue(ctx, row)
    log.info(f"Apply action available for {issue.get('company_name')!r}")
    return Success({"issue": issue})


def open_share_details(ctx: StepContext, previous: Optional[Success]) -> Outcome:
    row = ctx.actions.find(ctx.catalog.issue_row, "issue row")
    inner = ctx.actions.try_find(ctx.catalog.share_row_open, scope=row.handle)
    target = inner if isinstance(inner, Found) else row
    ctx.actions.perform("share row", target, lambda: target.handle.click())
    ctx.actions.settle(ctx.settle_ms * 2)
    return Success({"share_details_opened": True})


@measure("verify-allotment-terms")
def verify_allotment_terms(ctx: StepContext, previous: Optional[Success]) -> Outcome:
    text = ctx.actions.read_text(ctx.catalog.share_details_container, "share details")
    terms = parse_allotment_terms(text)
    log.info(f"Share value per unit={terms.share_value_per_unit}, min unit={terms.min_unit}")
    return check_allotment_terms(terms, ctx.thresholds)


def relocate_apply_action(ctx: StepContext, previous: Optional[Success]) -> Outcome:
    row = ctx.actions.try_find(ctx.catalog.issue_row)
    if isinstance(row, NotFound):
        if ctx.page_closed():
            raise PageUnavailable("Page closed while looking for the Apply button")
    elif _apply_button_in(ctx, row) is not None:
        return Success({"issue": _read_issue(ctx, row)})
    return Failure("Could not find Apply button after verification", FailureKind.element_not_found)


# ---------- Application ----------


def open_application_form(ctx: StepContext, previous: Optional[Success]) -> Outcome:
    row = ctx.actions.find(ctx.catalog.issue_row, "issue row")
    ctx.actions.click(ctx.catalog.apply_button, "Apply button", scope=row.handle)
    ctx.actions.settle(ctx.settle_ms * 2)
    return Success({"application_form_opened": True})


@measure("fill-application-form")
def fill_application_form(ctx: StepContext, previous: Optional[Success]) -> Outcome:
    applicant = ctx.applicant
    if applicant is None:
        return Failure("Application details are not configured", FailureKind.action_failed)

    a = ctx.actions
    a.select_option(ctx.catalog.application_bank, applicant.bank, "bank")
    # account numbers are loaded once a bank is chosen
    a.settle(ctx.settle_ms)
    a.select_option(ctx.catalog.application_account, applicant.account_number, "account number")
    a.fill(ctx.catalog.application_kitta, str(applicant.kitta), "applied kitta")
    a.fill(ctx.catalog.application_crn, applicant.crn, "CRN")
    a.check(ctx.catalog.declaration_checkbox, "declaration checkbox")
    a.click(ctx.catalog.proceed_button, '"Proceed" button')
    a.settle(ctx.settle_ms)
    return Success({"form_filled": True})


def submit_application(ctx: StepContext, previous: Optional[Success]) -> Outcome:
    a = ctx.actions
    if ctx.applicant and ctx.applicant.pin:
        a.fill(ctx.catalog.transaction_pin, ctx.applicant.pin, "transaction PIN")
    a.click(ctx.catalog.submit_button, "Apply (submit) button")
    try:
        a.settle(ctx.settle_ms * 3)
    except PageUnavailable:
        log.warning("Page closed right after submitting the application")
    return Success({"submitted": True, "page_closed_after_submit": ctx.page_closed()})


def check_final_status(ctx: StepContext, previous: Optional[Success]) -> Outcome:
    status, message = assess_application_status(
        ctx.page, ctx.catalog, timeout_ms=ctx.actions.per_candidate_timeout_ms
    )
    log.info(f"Application status: {status.value} ({message})")
    return Success({"application_status": status.value, "status_message": message})


__all__ = [
    "select_depository",
    "fill_credentials",
    "submit_login",
    "detect_post_login_state",
    "open_my_asba",
    "locate_apply_action",
    "open_share_details",
    "verify_allotment_terms",
    "return_to_asba",
    "relocate_apply_action",
    "open_application_form",
    "fill_application_form",
    "submit_application",
    "check_final_status",
]
