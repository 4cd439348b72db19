import os
import tempfile

import pytest

# Settings are cached per process; keep artifacts and log files out of the repo.
_TMP = tempfile.mkdtemp(prefix="meroshare-ipo-tests-")
os.environ.setdefault("ARTIFACTS_DIR", os.path.join(_TMP, "artifacts"))
os.environ.setdefault("LOG_FILE", os.path.join(_TMP, "meroshare-ipo.log"))
os.environ.setdefault("LOG_TO_FILE", "false")

from meroshare_ipo.utils.config import Settings  # noqa: E402


@pytest.fixture
def make_settings(tmp_path):
    def _make(**overrides) -> Settings:
        values = dict(
            MEROSHARE_USERNAME="1301000000123456",
            MEROSHARE_PASSWORD="s3cret",
            MEROSHARE_DP_NP="Nepal Bank Limited",
            MEROSHARE_BANK="NIC Asia Bank",
            MEROSHARE_P_ACCOUNT_NO="0123456789",
            MEROSHARE_KITTA_N0="10",
            MEROSHARE_CRN_NO="CRN-778899",
            MEROSHARE_PIN="1234",
            PER_CANDIDATE_TIMEOUT_MS=5,
            STEP_SETTLE_MS=0,
            ARTIFACTS_DIR=tmp_path / "artifacts",
            TELEGRAM_BOT_TOKEN=None,
            TELEGRAM_CHAT_ID=None,
        )
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings()
