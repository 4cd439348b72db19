import json
from contextlib import contextmanager
from pathlib import Path

from meroshare_ipo.core.engine import Engine, describe_page
from meroshare_ipo.notify import RecordingNotifier

from fakes import FakeElement, FakePage, build_portal


def engine_with(page, settings, notifier=None):
    engine = Engine(settings=settings, notifier=notifier or RecordingNotifier())

    @contextmanager
    def _open_page():
        yield page

    engine.open_page = _open_page
    return engine


def test_run_writes_artifacts_and_summary(settings):
    notifier = RecordingNotifier()
    page = build_portal()
    result = engine_with(page, settings, notifier).run(apply=True)

    assert result["ok"] is True
    assert result["outcome"] == "application_submitted"
    run_dir = Path(result["run_dir"])
    assert run_dir.parent == settings.ARTIFACTS_DIR
    assert json.loads((run_dir / "summary.json").read_text())["outcome"] == "application_submitted"
    assert page.visited == [settings.MEROSHARE_URL]
    assert notifier.kinds == ["ipo_available", "application_status"]


def test_unexpected_error_is_reported_and_notified(settings):
    notifier = RecordingNotifier()
    page = build_portal()

    def _boom(*a, **kw):
        raise RuntimeError("renderer crashed")

    page.goto = _boom
    result = engine_with(page, settings, notifier).run()

    assert result["ok"] is False
    assert result["error_type"] == "RuntimeError"
    assert notifier.kinds == ["error"]


def test_check_login_only_runs_login_chain(settings):
    notifier = RecordingNotifier()
    result = engine_with(build_portal(), settings, notifier).check_login()

    assert result["ok"] is True
    assert result["url"].endswith("#/dashboard")
    assert [s["name"] for s in result["chain"]["steps"]][-1] == "detect-post-login-state"
    assert notifier.sent == []


def test_describe_page_dumps_form_controls():
    page = FakePage()
    page.groups["input"] = [
        FakeElement(attrs={"type": "text", "id": "username"}),
        FakeElement(attrs={"type": "password", "id": "password"}),
    ]
    page.groups["button, input[type='submit']"] = [FakeElement(" Login ", attrs={"type": "submit"})]

    dump = describe_page(page)

    assert dump["inputs"] == [{"type": "text", "id": "username"}, {"type": "password", "id": "password"}]
    assert dump["buttons"] == [{"type": "submit", "text": "Login"}]
    assert dump["selects"] == []


class ClosingNotifier(RecordingNotifier):
    def __init__(self):
        super().__init__()
        self.closed = 0

    def close(self):
        self.closed += 1


def test_run_closes_notifier_and_logs_finish_to_run_log(settings):
    notifier = ClosingNotifier()
    result = engine_with(build_portal(), settings, notifier).run(apply=False)

    assert notifier.closed == 1
    lines = (Path(result["run_dir"]) / "run.log").read_text(encoding="utf-8").splitlines()
    messages = [json.loads(line)["msg"] for line in lines]
    assert messages[-1] == "Run finished: ok=True outcome=ipo_available"


def test_notifier_closed_even_when_run_fails(settings):
    notifier = ClosingNotifier()
    page = build_portal()

    def _boom(*a, **kw):
        raise RuntimeError("renderer crashed")

    page.goto = _boom
    engine_with(page, settings, notifier).run()

    assert notifier.closed == 1
