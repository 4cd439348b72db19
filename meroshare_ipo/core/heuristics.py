# meroshare_ipo/core/heuristics.py
from __future__ import annotations

"""Scrape-based decisions
------------------------
Each heuristic that depends on the portal's markup or wording lives in one
function here, with a fixed priority order, so UI drift breaks one place.
"""

import re
from typing import Any, Optional, Tuple

from playwright.sync_api import Error as PlaywrightError

from meroshare_ipo.core.catalog import SelectorCatalog
from meroshare_ipo.core.errors import PageUnavailable, page_is_closed
from meroshare_ipo.core.models import AllotmentTerms, AllotmentThresholds, IssueDetails
from meroshare_ipo.core.notifications import ApplicationStatus
from meroshare_ipo.core.outcome import Failure, FailureKind, Outcome, Success
from meroshare_ipo.locators.locator import Found, locate
from meroshare_ipo.utils.logger import get_logger

log = get_logger(__name__)

LOGIN_URL_MARKER = "login"

_NUMBER = r"([0-9][0-9,]*(?:\.[0-9]+)?)"
_CURRENCY = r"(?:Rs\.?|NPR|रु\.?)?"
_SEP = r"\s*[:\-]?\s*"

_VALUE_PER_UNIT_RE = re.compile(r"Share\s+Value\s+Per\s+Unit" + _SEP + _CURRENCY + r"\s*" + _NUMBER, re.IGNORECASE)
_MIN_UNIT_RE = re.compile(r"Min(?:imum)?\.?\s+Unit" + _SEP + _NUMBER, re.IGNORECASE)
_MAX_UNIT_RE = re.compile(r"Max(?:imum)?\.?\s+Unit" + _SEP + _NUMBER, re.IGNORECASE)

_SHARE_TYPE_RE = re.compile(r"\b(IPO|FPO|Right\s+Share|Rights?|Mutual\s+Fund|Debentures?|Local)\b", re.IGNORECASE)
_SHARE_GROUP_RE = re.compile(r"\b(Ordinary\s+Shares?|Preference\s+Shares?|Units?)\b", re.IGNORECASE)


# ---------- Login state ----------


def assess_login_state(page: Any, catalog: SelectorCatalog, *, timeout_ms: int = 1000) -> Outcome:
    """
    Decide whether the login went through. Checks run in a fixed order:
      1) the URL no longer contains "login"      -> success
      2) a success marker is visible             -> success
      3) an error marker is visible              -> failure with its text
      4) none of the above                       -> failure (still on login page)
    A page that closed before any marker showed raises PageUnavailable.
    """
    url = page.url or ""
    if LOGIN_URL_MARKER not in url.lower():
        return Success({"login_check": "url_changed", "url": url})

    ok = locate(page, catalog.login_success_markers, per_candidate_timeout_ms=timeout_ms)
    if isinstance(ok, Found):
        return Success({"login_check": "success_marker", "url": url, "marker": ok.matched_selector})

    err = locate(page, catalog.login_error_markers, per_candidate_timeout_ms=timeout_ms)
    if isinstance(err, Found):
        try:
            text = (err.handle.text_content() or "").strip()
        except PlaywrightError:
            text = ""
        log.info(f"Login error shown by portal: {text!r}")
        reason = f"Login failed: {text}" if text else "Login failed"
        return Failure(reason, FailureKind.login_failed, {"url": url, "marker": err.matched_selector})

    if page_is_closed(page):
        raise PageUnavailable("Page closed before the login result could be read")
    return Failure("Login failed: still on login page", FailureKind.login_failed, {"url": url})


# ---------- Numbers ----------


def normalize_number(text: Optional[str]) -> Optional[float]:
    """
    '  Rs. 1,000.00 ' -> 1000.0;  '10 kitta' -> 10.0;  'N/A' -> None
    """
    if text is None:
        return None
    cleaned = re.sub(r"(?i)(rs\.?|npr|रु\.?)", "", str(text))
    m = re.search(_NUMBER, cleaned.replace("\u00a0", " "))
    if not m:
        return None
    try:
        return float(m.group(1).replace(",", ""))
    except ValueError:
        return None


# ---------- Allotment terms ----------


def parse_allotment_terms(text: str) -> AllotmentTerms:
    """Pull per-unit value and min/max unit out of the issue detail text."""
    text = text or ""

    def _grab(rx: re.Pattern) -> Optional[float]:
        m = rx.search(text)
        return normalize_number(m.group(1)) if m else None

    return AllotmentTerms(
        share_value_per_unit=_grab(_VALUE_PER_UNIT_RE),
        min_unit=_grab(_MIN_UNIT_RE),
        max_unit=_grab(_MAX_UNIT_RE),
    )


def check_allotment_terms(terms: AllotmentTerms, thresholds: AllotmentThresholds) -> Outcome:
    """
    Success iff both scraped values satisfy the thresholds:
    value <= max_value_per_unit and min_unit <= max_min_unit
    (strict '<' for both when thresholds.inclusive is False).
    """
    data = {
        "share_value_per_unit": terms.share_value_per_unit,
        "min_unit": terms.min_unit,
        "max_unit": terms.max_unit,
    }
    if terms.share_value_per_unit is None or terms.min_unit is None:
        missing = [k for k in ("share_value_per_unit", "min_unit") if data[k] is None]
        return Failure(f"Could not read {', '.join(missing)} from share details", FailureKind.validation_failed, data)

    def _within(value: float, limit: float) -> bool:
        return value <= limit if thresholds.inclusive else value < limit

    op = "<=" if thresholds.inclusive else "<"
    problems = []
    if not _within(terms.share_value_per_unit, thresholds.max_value_per_unit):
        problems.append(
            f"Share value per unit {terms.share_value_per_unit:g} is not {op} {thresholds.max_value_per_unit:g}"
        )
    if not _within(terms.min_unit, thresholds.max_min_unit):
        problems.append(f"Min unit {terms.min_unit:g} is not {op} {thresholds.max_min_unit:g}")

    if problems:
        return Failure("; ".join(problems), FailureKind.validation_failed, data)
    return Success(data)


# ---------- Issue rows ----------


def parse_issue_row(text: str) -> IssueDetails:
    """Company name is the first non-empty line; type and group are matched anywhere in the row."""
    lines = [ln.strip() for ln in (text or "").splitlines() if ln.strip()]
    company = None
    for ln in lines:
        if ln.lower() in ("apply", "edit", "view"):
            continue
        company = ln
        break

    share_type = _SHARE_TYPE_RE.search(text or "")
    share_group = _SHARE_GROUP_RE.search(text or "")
    return IssueDetails(
        company_name=company,
        share_type=share_type.group(1) if share_type else None,
        share_group=share_group.group(1) if share_group else None,
        raw_text=(text or "").strip(),
    )


# ---------- Application status ----------


def assess_application_status(page: Any, catalog: SelectorCatalog, *, timeout_ms: int = 1000) -> Tuple[ApplicationStatus, str]:
    """
    Read the portal's reaction to a submitted application:
      1) page already closed       -> unknown (closure often follows a good submit)
      2) success toast/alert       -> success
      3) error toast/alert         -> failed
      4) nothing recognizable      -> unknown
    """
    closed_msg = "Page closed after submission. IPO may or may not have been submitted."
    if page_is_closed(page):
        return ApplicationStatus.unknown, closed_msg

    for status, chain in (
        (ApplicationStatus.success, catalog.status_success),
        (ApplicationStatus.failed, catalog.status_error),
    ):
        found = locate(page, chain, per_candidate_timeout_ms=timeout_ms)
        if isinstance(found, Found):
            try:
                text = (found.handle.text_content() or "").strip()
            except PlaywrightError:
                if page_is_closed(page):
                    return ApplicationStatus.unknown, closed_msg
                text = ""
            return status, text or f"IPO application {status.value}"

    if page_is_closed(page):
        return ApplicationStatus.unknown, closed_msg
    return ApplicationStatus.unknown, "No confirmation shown after submission"


__all__ = [
    "assess_login_state",
    "normalize_number",
    "parse_allotment_terms",
    "check_allotment_terms",
    "parse_issue_row",
    "assess_application_status",
]
