import json
import logging

from meroshare_ipo.utils.logger import JsonFormatter, _SecretMask, bound, get_logger, log_with_context


def make_record(msg, *args, extra=None):
    record = logging.LogRecord("meroshare_ipo.test", logging.INFO, __file__, 1, msg, args, None)
    if extra is not None:
        record.extra = extra
    return record


def test_secret_values_are_masked():
    mask = _SecretMask(["s3cret-pass", "1234", None, ""])
    record = make_record("filled %s with %s", "password field", "s3cret-pass")

    assert mask.filter(record) is True
    assert record.getMessage() == "filled password field with ***"


def test_short_values_are_not_treated_as_secrets():
    mask = _SecretMask(["ab"])
    record = make_record("tab stays")
    mask.filter(record)
    assert record.getMessage() == "tab stays"


def test_json_formatter_merges_context():
    line = JsonFormatter().format(make_record("step done", extra={"chain": "login", "step": "submit-login"}))
    doc = json.loads(line)

    assert doc["msg"] == "step done"
    assert doc["level"] == "INFO"
    assert doc["chain"] == "login" and doc["step"] == "submit-login"


def test_bound_context_is_visible_then_removed():
    log = get_logger("meroshare_ipo.test")
    with bound(run_id="20261019T120000Z"):
        scoped = log_with_context(log, step="open-my-asba")
        assert scoped.extra["extra"]["run_id"] == "20261019T120000Z"
        assert scoped.extra["extra"]["step"] == "open-my-asba"
    assert "run_id" not in log.extra["extra"]
