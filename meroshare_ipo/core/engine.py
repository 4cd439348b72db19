from __future__ import annotations

"""Browser engine
-----------------
Creates a Playwright browser, opens the MeroShare login page, and hands the
page to the IPO automation. Owns the per-run artifacts directory and the
run.log attached to it. Kept free of workflow logic.
"""

import json
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from meroshare_ipo.core import notifications
from meroshare_ipo.core.catalog import SelectorCatalog, load_selector_catalog
from meroshare_ipo.core.errors import ConfigurationError
from meroshare_ipo.core.orchestrator import IpoAutomation
from meroshare_ipo.locators.locator import NotFound, locate
from meroshare_ipo.notify.base import Notifier
from meroshare_ipo.notify.telegram import build_notifier
from meroshare_ipo.utils.config import Settings, get_settings
from meroshare_ipo.utils.logger import (
    attach_file_logger,
    detach_file_logger,
    get_logger,
    log_with_context,
)


def _ts() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d_%H-%M-%S")


# Elements dumped by `inspect`; enough to rebuild the login chains after UI drift.
_INSPECT_QUERIES = {
    "inputs": ("input", ("type", "name", "id", "placeholder", "formcontrolname", "class")),
    "selects": ("select", ("name", "id", "formcontrolname", "class")),
    "ng_selects": ("ng-select, .select2-container, [role='combobox']", ("id", "class", "role")),
    "buttons": ("button, input[type='submit']", ("type", "id", "class")),
}


def describe_page(page: Any) -> Dict[str, List[Dict[str, Any]]]:
    """Attributes (and button text) of the form controls currently on the page."""
    dump: Dict[str, List[Dict[str, Any]]] = {}
    for key, (selector, attrs) in _INSPECT_QUERIES.items():
        items = []
        for el in page.locator(selector).all():
            entry = {a: el.get_attribute(a) for a in attrs}
            if key == "buttons":
                entry["text"] = (el.inner_text() or "").strip()
            items.append({k: v for k, v in entry.items() if v})
        dump[key] = items
    return dump


class Engine:
    """Runs the MeroShare automation against a live browser and manages artifacts."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        notifier: Optional[Notifier] = None,
        catalog: Optional[SelectorCatalog] = None,
    ):
        self.settings = settings or get_settings()
        self.log = get_logger(__name__)
        self.catalog = catalog or load_selector_catalog(self.settings.SELECTORS_FILE)
        self._notifier = notifier
        self.last_run_dir: Optional[Path] = None

    # ---------- Browser lifecycle ----------

    @contextmanager
    def open_page(self) -> Iterator[Any]:
        s = self.settings
        with sync_playwright() as p:
            browser_type = getattr(p, s.BROWSER_TYPE.value)
            browser = browser_type.launch(**s.playwright_launch_kwargs())
            try:
                context = browser.new_context(**s.playwright_context_kwargs())
                yield context.new_page()
            finally:
                browser.close()

    def open_login_page(self, page: Any) -> bool:
        """Navigate to the portal and wait for the login form. Returns False if the form never showed."""
        s = self.settings
        self.log.info(f"Opening {s.MEROSHARE_URL}")
        page.goto(s.MEROSHARE_URL, wait_until="domcontentloaded", timeout=s.PAGE_LOAD_TIMEOUT)
        ready = locate(page, self.catalog.login_form_ready, per_candidate_timeout_ms=s.LOGIN_FORM_TIMEOUT)
        if isinstance(ready, NotFound):
            self.log.warning(f"Login form not detected (tried {len(ready.tried_selectors)} selector(s)); continuing")
            return False
        return True

    def _prepare_run_dir(self, label: str) -> Path:
        run_dir = self.settings.ARTIFACTS_DIR / f"{label}_{_ts()}"
        run_dir.mkdir(parents=True, exist_ok=True)
        self.last_run_dir = run_dir
        return run_dir

    def _notifier_for_run(self) -> Notifier:
        # one notifier per run; it is closed when the run ends
        return self._notifier if self._notifier is not None else build_notifier(self.settings)

    # ---------- Commands ----------

    def run(self, apply: bool = True) -> dict:
        """Log in, look for an open IPO, verify it and (optionally) apply.

        Returns a dict like {"ok": bool, "outcome": str, "run_dir": str, ...};
        the same summary is written to summary.json in the run directory.
        """
        # Fail before launching a browser when credentials are missing.
        self.settings.credentials()

        run_dir = self._prepare_run_dir("run")
        handler = attach_file_logger(run_dir / "run.log")
        notifier = self._notifier_for_run()
        log = log_with_context(self.log, run_dir=str(run_dir))
        try:
            result = self._drive(run_dir, notifier, apply, log)
            result["run_dir"] = str(run_dir)
            (run_dir / "summary.json").write_text(json.dumps(result, indent=2, default=str), encoding="utf-8")
            log.info(f"Run finished: ok={result.get('ok')} outcome={result.get('outcome', '-')}")
        finally:
            notifier.close()
            detach_file_logger(handler)
        return result

    def _drive(self, run_dir: Path, notifier: Notifier, apply: bool, log: logging.LoggerAdapter) -> dict:
        try:
            with self.open_page() as page:
                self.open_login_page(page)
                automation = IpoAutomation(
                    page, self.settings, notifier, self.catalog, artifacts_dir=run_dir
                )
                return automation.run(apply=apply).to_dict()
        except ConfigurationError:
            raise
        except Exception as e:
            log.exception("Run failed:")
            notifier.send(notifications.error(f"{type(e).__name__}: {e}"))
            return {"ok": False, "error": str(e), "error_type": type(e).__name__}

    def check_login(self) -> dict:
        """Only run the login chain; nothing is sent to the notifier."""
        self.settings.credentials()

        run_dir = self._prepare_run_dir("check-login")
        handler = attach_file_logger(run_dir / "run.log")
        try:
            with self.open_page() as page:
                self.open_login_page(page)
                automation = IpoAutomation(page, self.settings, catalog=self.catalog, artifacts_dir=run_dir)
                login = automation.login()
                result = {
                    "ok": login.ok,
                    "reason": login.failure.reason if login.failure else None,
                    "failed_step": login.failed_step,
                    "url": page.url,
                    "chain": login.to_dict(),
                }
        except PlaywrightError as e:
            self.log.exception("Login check failed:")
            result = {"ok": False, "error": e.message, "error_type": type(e).__name__}
        finally:
            detach_file_logger(handler)
        result["run_dir"] = str(run_dir)
        return result

    def inspect_login_page(self) -> dict:
        """Open the login page and dump its form controls."""
        try:
            with self.open_page() as page:
                form_ready = self.open_login_page(page)
                return {
                    "ok": True,
                    "url": page.url,
                    "login_form_detected": form_ready,
                    "elements": describe_page(page),
                }
        except PlaywrightError as e:
            self.log.exception("Inspect failed:")
            return {"ok": False, "error": e.message, "error_type": type(e).__name__}


__all__ = ["Engine", "describe_page"]
