# meroshare_ipo/core/catalog.py
from __future__ import annotations

"""Selector catalog
------------------
Every selector chain the workflow probes, in priority order. The built-in
defaults track the current MeroShare markup; a YAML file can replace any
chain without a code change when the portal UI drifts.
"""

import os
import re
from pathlib import Path
from typing import List

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from meroshare_ipo.locators.locator import SelectorCandidate


def _chain(*values: str):
    return lambda: [SelectorCandidate(value=v) for v in values]


class SelectorCatalog(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # ---- Login page ----
    login_form_ready: List[SelectorCandidate] = Field(default_factory=_chain(
        "form",
        "input#username",
        "select2#selectBranch",
    ))
    depository_container: List[SelectorCandidate] = Field(default_factory=_chain(
        'span.select2-container:has-text("Select your DP")',
        'span.select2-selection:has-text("Select your DP")',
        'span.select2-selection__rendered:has-text("Select your DP")',
        "span.select2-container",
        "select2#selectBranch + span.select2-container",
    ))
    depository_option: List[SelectorCandidate] = Field(default_factory=_chain(
        'li.select2-results__option:has-text("{dp}")',
        'ul.select2-results__options li:has-text("{dp}")',
        'li:has-text("{dp}")',
        'text="{dp}"',
    ))
    depository_native_select: List[SelectorCandidate] = Field(default_factory=_chain(
        "select#selectBranch",
        'select[name*="dp" i]',
        'select[id*="dp" i]',
        'select[class*="dp" i]',
    ))
    depository_custom_dropdown: List[SelectorCandidate] = Field(default_factory=_chain(
        "ng-select .ng-select-container",
        "ng-select",
        '[aria-haspopup="listbox"]',
        'div[class*="ng-select"]',
        'label:has-text("DP") + *',
        'label:has-text("Depository") + *',
    ))
    depository_custom_option: List[SelectorCandidate] = Field(default_factory=_chain(
        '[role="option"]:has-text("{dp}")',
        'ng-option:has-text("{dp}")',
        '.ng-option:has-text("{dp}")',
        'div[class*="option"]:has-text("{dp}")',
        'text="{dp}"',
    ))
    username_field: List[SelectorCandidate] = Field(default_factory=_chain(
        "input#username",
        'input[name="username"]',
        'input[name="email"]',
        'input[id*="user"]',
        'input[id*="email"]',
        'input[placeholder*="user" i]',
        'input[placeholder*="email" i]',
        'input[type="text"]',
    ))
    password_field: List[SelectorCandidate] = Field(default_factory=_chain(
        "input#password",
        'input[name="password"]',
        'input[type="password"]',
        'input[id*="pass"]',
    ))
    login_button: List[SelectorCandidate] = Field(default_factory=_chain(
        'button[type="submit"]',
        'button:has-text("Login")',
        'button:has-text("Sign in")',
        'button:has-text("Log in")',
        'input[type="submit"]',
        "button.btn-primary",
        "button.btn-login",
    ))
    login_success_markers: List[SelectorCandidate] = Field(default_factory=_chain(
        'a:has-text("My ASBA")',
        'a:has-text("Logout")',
        "app-dashboard",
        ".user-profile",
    ))
    login_error_markers: List[SelectorCandidate] = Field(default_factory=_chain(
        ".toast-error",
        ".error",
        ".alert-danger",
        ".alert-error",
        '[role="alert"]',
        ".invalid-feedback",
    ))

    # ---- My ASBA ----
    my_asba_link: List[SelectorCandidate] = Field(default_factory=_chain(
        'a:has-text("My ASBA")',
        'button:has-text("My ASBA")',
        'a[href*="asba" i]',
        'nav a:has-text("My ASBA")',
        'li:has-text("My ASBA")',
        "text=/My ASBA/i",
    ))
    apply_for_issue_tab: List[SelectorCandidate] = Field(default_factory=_chain(
        'a:has-text("Apply for Issue")',
        'li:has-text("Apply for Issue")',
    ))
    issue_row: List[SelectorCandidate] = Field(default_factory=_chain(
        'div.company-list:has(button:has-text("Apply"))',
        '.company-list:has-text("Apply")',
        'tr:has(button:has-text("Apply"))',
        'li:has(button:has-text("Apply"))',
    ))
    # looked up inside the matched issue row
    apply_button: List[SelectorCandidate] = Field(default_factory=_chain(
        'button.btn-issue:has-text("Apply")',
        'button:has-text("Apply")',
        'a:has-text("Apply")',
    ))
    share_row_open: List[SelectorCandidate] = Field(default_factory=_chain(
        "span.company-name",
        ".company-name",
        'span[tooltip="Company Name"]',
    ))
    share_details_container: List[SelectorCandidate] = Field(default_factory=_chain(
        "app-issue-detail",
        ".issue-detail",
        ".modal-body",
        ".card-body",
        "body",
    ))

    # ---- Application form ----
    application_bank: List[SelectorCandidate] = Field(default_factory=_chain(
        "select#selectBank",
        'select[name="bank"]',
        'select[formcontrolname="bank"]',
        'select[id*="bank" i]',
    ))
    application_account: List[SelectorCandidate] = Field(default_factory=_chain(
        "select#accountNumber",
        'select[name="accountNumber"]',
        'select[formcontrolname="accountNumber"]',
        'select[id*="account" i]',
    ))
    application_kitta: List[SelectorCandidate] = Field(default_factory=_chain(
        "input#appliedKitta",
        'input[name="appliedKitta"]',
        'input[formcontrolname="appliedKitta"]',
        'input[id*="kitta" i]',
    ))
    application_crn: List[SelectorCandidate] = Field(default_factory=_chain(
        "input#crnNumber",
        'input[name="crnNumber"]',
        'input[formcontrolname="crnNumber"]',
        'input[id*="crn" i]',
    ))
    declaration_checkbox: List[SelectorCandidate] = Field(default_factory=_chain(
        "input#disclaimer",
        'input[name="disclaimer"]',
        'input[type="checkbox"]',
    ))
    proceed_button: List[SelectorCandidate] = Field(default_factory=_chain(
        'button:has-text("Proceed")',
        'button[type="submit"]',
    ))
    transaction_pin: List[SelectorCandidate] = Field(default_factory=_chain(
        "input#transactionPIN",
        'input[name="transactionPIN"]',
        'input[id*="pin" i]',
    ))
    submit_button: List[SelectorCandidate] = Field(default_factory=_chain(
        'button:has-text("Apply")',
        'button[type="submit"]',
    ))
    status_success: List[SelectorCandidate] = Field(default_factory=_chain(
        ".toast-success",
        ".alert-success",
        "text=/applied successfully/i",
    ))
    status_error: List[SelectorCandidate] = Field(default_factory=_chain(
        ".toast-error",
        ".alert-danger",
        '[role="alert"]',
    ))

    def render(self, chain: str, **values: str) -> List[SelectorCandidate]:
        """Copy of `chain` with {placeholders} filled, e.g. render("depository_option", dp="Nepal Bank Limited")."""
        out: List[SelectorCandidate] = []
        for cand in getattr(self, chain):
            v = cand.value
            for key, val in values.items():
                v = v.replace("{" + key + "}", val)
            out.append(cand.model_copy(update={"value": v}))
        return out


# ---------- Loading ----------


def _subst_env(obj):
    if isinstance(obj, str):
        def repl(m):
            return os.environ.get(m.group(1), m.group(0))
        return re.sub(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}", repl, obj)
    if isinstance(obj, list):
        return [_subst_env(x) for x in obj]
    if isinstance(obj, dict):
        return {k: _subst_env(v) for k, v in obj.items()}
    return obj


def load_selector_catalog(path: Path | str | None = None) -> SelectorCatalog:
    """
    Built-in catalog, with the chains present in the YAML file at `path`
    replacing their defaults. Entries may be plain strings or
    {value: ..., timeout_ms: ...} mappings.
    """
    if path is None:
        return SelectorCatalog()

    cat_path = Path(path)
    if not cat_path.exists():
        raise FileNotFoundError(f"Selector file not found: {cat_path}")

    try:
        data = yaml.safe_load(cat_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as ye:
        raise ValueError(f"YAML parse error in {cat_path}: {ye}") from ye

    if data is None:
        return SelectorCatalog()
    if not isinstance(data, dict):
        raise ValueError(f"Selector file {cat_path} must define a mapping of chain name -> selectors.")

    try:
        return SelectorCatalog.model_validate(_subst_env(data))
    except ValidationError as ve:
        lines = [f"Invalid selector file '{cat_path}':"]
        for e in ve.errors():
            loc = ".".join(str(p) for p in e.get("loc", []))
            lines.append(f"  - {loc}: {e.get('msg', 'invalid value')}")
        raise ValueError("\n".join(lines)) from ve


__all__ = ["SelectorCatalog", "load_selector_catalog"]
