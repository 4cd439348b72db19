# meroshare_ipo/utils/config.py
from __future__ import annotations

import functools
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from meroshare_ipo.core.errors import ConfigurationError
from meroshare_ipo.core.models import AllotmentThresholds, ApplicantDetails, Credentials


# ---------- Enums ----------

class BrowserType(str, Enum):
    chromium = "chromium"
    firefox = "firefox"
    webkit = "webkit"


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


_SECRET_FIELDS = (
    "MEROSHARE_PASSWORD",
    "MEROSHARE_PIN",
    "MEROSHARE_CRN_NO",
    "MEROSHARE_P_ACCOUNT_NO",
    "TELEGRAM_BOT_TOKEN",
    "PROXY_PASSWORD",
)


# ---------- Settings ----------

class Settings(BaseSettings):
    """
    Everything one IPO run needs: portal, login, application form,
    thresholds, locator timings, Telegram, browser and logging.

    Process environment wins over `.env`, which wins over the defaults here.
    Blank values in `.env` count as unset.
    """

    # ---- Browser ----
    HEADLESS: bool = True
    BROWSER_TYPE: BrowserType = BrowserType.chromium
    VIEWPORT_WIDTH: int = Field(default=1280, ge=800)
    VIEWPORT_HEIGHT: int = Field(default=800, ge=600)
    SLOW_MO: int = Field(default=0, ge=0, description="Delay between Playwright operations, ms")
    USER_AGENT: Optional[str] = None
    LOCALE: str = "en-US"
    TIMEZONE_ID: str = Field(default="Asia/Kathmandu", description="Portal dates are Nepal time")

    # ---- Portal ----
    MEROSHARE_URL: str = Field(default="https://meroshare.cdsc.com.np/#/login")
    PAGE_LOAD_TIMEOUT: int = Field(default=60000, ge=1000, description="goto() timeout, ms")
    LOGIN_FORM_TIMEOUT: int = Field(default=15000, ge=1000)

    # ---- Credentials ----
    MEROSHARE_USERNAME: Optional[str] = None
    MEROSHARE_PASSWORD: Optional[str] = None
    MEROSHARE_DP_NP: Optional[str] = Field(default=None, description="DP label, e.g. 'Nepal Bank Limited'")

    # ---- Application form ----
    MEROSHARE_BANK: Optional[str] = None
    MEROSHARE_P_ACCOUNT_NO: Optional[str] = None
    MEROSHARE_KITTA_N0: Optional[str] = None
    MEROSHARE_CRN_NO: Optional[str] = None
    MEROSHARE_PIN: Optional[str] = None

    # ---- Allotment thresholds ----
    MAX_SHARE_VALUE_PER_UNIT: float = Field(default=100.0, ge=0)
    MAX_MIN_UNIT: float = Field(default=10.0, ge=0)
    THRESHOLD_INCLUSIVE: bool = Field(default=True)

    # ---- Locator timings ----
    PER_CANDIDATE_TIMEOUT_MS: int = Field(default=1500, ge=1)
    OVERALL_LOCATE_TIMEOUT_MS: Optional[int] = Field(default=None, ge=1)
    STEP_SETTLE_MS: int = Field(default=1000, ge=0, description="Pause after navigation-like actions")
    SELECTORS_FILE: Optional[Path] = Field(default=None, description="YAML overriding selector chains")

    # ---- Telegram ----
    TELEGRAM_BOT_TOKEN: Optional[str] = None
    TELEGRAM_CHAT_ID: Optional[str] = None
    TELEGRAM_TIMEOUT: int = Field(default=15, ge=1, description="HTTP timeout in seconds")

    # ---- Artifacts ----
    ARTIFACTS_DIR: Path = Field(default=Path("./test-results"))

    # ---- Logging ----
    LOG_LEVEL: LogLevel = LogLevel.INFO
    LOG_TO_FILE: bool = False
    LOG_FILE: Path = Path("./meroshare-ipo.log")
    COLORIZED_OUTPUT: bool = True

    # ---- Outbound proxy (browser only) ----
    PROXY_SERVER: Optional[str] = None
    PROXY_USERNAME: Optional[str] = None
    PROXY_PASSWORD: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("ARTIFACTS_DIR", "LOG_FILE", "SELECTORS_FILE", mode="after")
    @classmethod
    def _absolutize(cls, v: Optional[Path]):
        if v is None:
            return v
        return v if v.is_absolute() else Path.cwd() / v

    @field_validator(
        "MEROSHARE_USERNAME",
        "MEROSHARE_PASSWORD",
        "MEROSHARE_DP_NP",
        "MEROSHARE_BANK",
        "MEROSHARE_P_ACCOUNT_NO",
        "MEROSHARE_KITTA_N0",
        "MEROSHARE_CRN_NO",
        "MEROSHARE_PIN",
        "TELEGRAM_BOT_TOKEN",
        "TELEGRAM_CHAT_ID",
        mode="before",
    )
    @classmethod
    def _blank_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def ensure_dirs(self) -> None:
        self.ARTIFACTS_DIR.mkdir(parents=True, exist_ok=True)
        if self.LOG_TO_FILE:
            self.LOG_FILE.parent.mkdir(parents=True, exist_ok=True)

    # ---- Plain parameter objects for the workflow ----

    def credentials(self) -> Credentials:
        if not self.MEROSHARE_USERNAME or not self.MEROSHARE_PASSWORD:
            raise ConfigurationError("MEROSHARE_USERNAME and MEROSHARE_PASSWORD must be set in .env file")
        return Credentials(
            username=self.MEROSHARE_USERNAME,
            password=self.MEROSHARE_PASSWORD,
            dp=self.MEROSHARE_DP_NP,
        )

    def applicant(self) -> Optional[ApplicantDetails]:
        """Application details, or None unless bank, account, kitta and CRN are all set."""
        required = (self.MEROSHARE_BANK, self.MEROSHARE_P_ACCOUNT_NO, self.MEROSHARE_KITTA_N0, self.MEROSHARE_CRN_NO)
        if not all(required):
            return None
        return ApplicantDetails(
            bank=self.MEROSHARE_BANK,
            account_number=self.MEROSHARE_P_ACCOUNT_NO,
            kitta=self.MEROSHARE_KITTA_N0,
            crn=self.MEROSHARE_CRN_NO,
            pin=self.MEROSHARE_PIN,
        )

    def thresholds(self) -> AllotmentThresholds:
        return AllotmentThresholds(
            max_value_per_unit=self.MAX_SHARE_VALUE_PER_UNIT,
            max_min_unit=self.MAX_MIN_UNIT,
            inclusive=self.THRESHOLD_INCLUSIVE,
        )

    def masked_dump(self) -> dict:
        """Effective configuration with secrets replaced by '***'."""
        data = {}
        for k, v in self.model_dump().items():
            if k in _SECRET_FIELDS and v:
                data[k] = "***"
            elif isinstance(v, Path):
                data[k] = str(v)
            elif isinstance(v, Enum):
                data[k] = v.value
            else:
                data[k] = v
        return data

    # ---- Playwright options ----

    def _proxy(self) -> Optional[dict]:
        if not self.PROXY_SERVER:
            return None
        proxy = {"server": self.PROXY_SERVER}
        if self.PROXY_USERNAME:
            proxy.update(username=self.PROXY_USERNAME, password=self.PROXY_PASSWORD or "")
        return proxy

    def playwright_launch_kwargs(self) -> dict:
        """Arguments for `browser_type.launch()`."""
        opts = dict(headless=self.HEADLESS, slow_mo=self.SLOW_MO)
        proxy = self._proxy()
        if proxy:
            opts["proxy"] = proxy
        return opts

    def playwright_context_kwargs(self) -> dict:
        """Arguments for `browser.new_context()`."""
        opts = dict(
            viewport=dict(width=self.VIEWPORT_WIDTH, height=self.VIEWPORT_HEIGHT),
            locale=self.LOCALE,
            timezone_id=self.TIMEZONE_ID,
        )
        if self.USER_AGENT:
            opts["user_agent"] = self.USER_AGENT
        return opts


# ---------- Process-wide settings ----------

@functools.lru_cache(maxsize=None)
def get_settings() -> Settings:
    """The settings for this process (read once). Tests call `get_settings.cache_clear()`."""
    settings = Settings()
    settings.ensure_dirs()
    return settings
