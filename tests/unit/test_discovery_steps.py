import pytest

from meroshare_ipo.core import steps
from meroshare_ipo.core.catalog import SelectorCatalog
from meroshare_ipo.core.chain import StepContext
from meroshare_ipo.core.errors import PageUnavailable
from meroshare_ipo.core.outcome import Failure, FailureKind, Success
from meroshare_ipo.locators.actions import ElementActions

from fakes import ISSUE_ROW, FakeElement, FakePage

LOOSE_ROW = '.company-list:has-text("Apply")'
ROW_BUTTON = 'button.btn-issue:has-text("Apply")'


def make_ctx(page):
    return StepContext(
        page=page,
        actions=ElementActions(page, per_candidate_timeout_ms=5),
        catalog=SelectorCatalog(),
        settle_ms=0,
    )


def open_row(text="Himalayan Hydropower Ltd.\nIPO\nOrdinary Shares\nApply"):
    return FakeElement(text, children={ROW_BUTTON: FakeElement("Apply")})


def applied_row():
    # matches the loose text candidate but offers no Apply button
    return FakeElement("Applied Hydro Ltd.\nIPO\nEdit", children={"button.btn-edit": FakeElement("Edit")})


@pytest.mark.parametrize("step", [steps.locate_apply_action, steps.relocate_apply_action])
def test_row_with_apply_button_yields_issue(step):
    page = FakePage({ISSUE_ROW: open_row()})
    out = step(make_ctx(page), None)

    assert isinstance(out, Success)
    assert out.data["issue"]["company_name"] == "Himalayan Hydropower Ltd."
    assert ROW_BUTTON in page.probes


def test_row_without_apply_button_means_no_ipo_open():
    page = FakePage({LOOSE_ROW: applied_row()})
    out = steps.locate_apply_action(make_ctx(page), None)

    assert isinstance(out, Failure)
    assert out.kind == FailureKind.ipo_not_found


def test_no_row_means_no_ipo_open():
    out = steps.locate_apply_action(make_ctx(FakePage()), None)

    assert isinstance(out, Failure)
    assert out.kind == FailureKind.ipo_not_found


def test_relocate_checks_the_button_not_just_the_row():
    page = FakePage({LOOSE_ROW: applied_row()})
    out = steps.relocate_apply_action(make_ctx(page), None)

    assert isinstance(out, Failure)
    assert out.kind == FailureKind.element_not_found
    assert out.reason == "Could not find Apply button after verification"
    assert ROW_BUTTON in page.probes


@pytest.mark.parametrize("step", [steps.locate_apply_action, steps.relocate_apply_action])
def test_closed_page_is_page_unavailable(step):
    page = FakePage({ISSUE_ROW: open_row()})
    page.close()

    with pytest.raises(PageUnavailable):
        step(make_ctx(page), None)
