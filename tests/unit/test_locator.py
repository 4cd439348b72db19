import pytest
from pydantic import ValidationError

from meroshare_ipo.locators import Found, NotFound, SelectorCandidate, locate

from fakes import FakeElement, FakePage


def test_probes_in_order_and_stops_at_first_match():
    page = FakePage({"#c": FakeElement("third"), "#d": FakeElement("fourth")})
    result = locate(page, ["#a", "#b", "#c", "#d"], per_candidate_timeout_ms=5)

    assert isinstance(result, Found)
    assert result.matched_selector == "#c"
    assert result.index == 2
    assert result.handle.inner_text() == "third"
    # "#d" is never probed once "#c" matched
    assert page.probes == ["#a", "#b", "#c"]
    assert page.probe_timeouts == [5, 5, 5]


def test_not_found_lists_every_candidate_in_order():
    page = FakePage()
    result = locate(page, ["#x", "text=Login", "xpath=//button"], per_candidate_timeout_ms=5)

    assert isinstance(result, NotFound)
    assert not result.ok
    assert result.tried_selectors == ["#x", "text=Login", "xpath=//button"]
    assert result.elapsed_ms >= 0


def test_empty_candidate_list_does_not_probe():
    page = FakePage({"#a": FakeElement()})
    result = locate(page, [])

    assert isinstance(result, NotFound)
    assert result.tried_selectors == []
    assert page.probes == []


def test_candidate_timeout_overrides_default():
    page = FakePage({"#b": FakeElement()})
    result = locate(page, [SelectorCandidate(value="#a", timeout_ms=40), "#b"], per_candidate_timeout_ms=7)

    assert result.ok
    assert page.probe_timeouts == [40, 7]


def test_overall_budget_clamps_and_skips_remaining_candidates():
    page = FakePage({"#c": FakeElement()})
    page.miss_delay_s = 0.02

    result = locate(page, ["#a", "#b", "#c"], per_candidate_timeout_ms=500, overall_timeout_ms=5)

    assert isinstance(result, NotFound)
    # the first wait is clamped to what is left of the cap; the rest are never tried
    assert page.probe_timeouts[0] <= 5
    assert result.tried_selectors == ["#a"]


def test_hidden_element_only_matches_when_attached_is_enough():
    page = FakePage({"#hidden": FakeElement(visible=False)})

    assert not locate(page, ["#hidden"], per_candidate_timeout_ms=5).ok
    assert locate(page, ["#hidden"], per_candidate_timeout_ms=5, require_visible=False).ok


def test_closed_page_yields_not_found_instead_of_raising():
    page = FakePage({"#a": FakeElement()})
    page.close()

    result = locate(page, ["#a", "#b"], per_candidate_timeout_ms=5)
    assert isinstance(result, NotFound)
    assert result.tried_selectors == ["#a", "#b"]


def test_scoped_lookup_only_sees_children():
    row = FakeElement(children={"button.apply": FakeElement("Apply")})
    page = FakePage({"div.row": row, "button.other": FakeElement()})
    row_handle = locate(page, ["div.row"], per_candidate_timeout_ms=5).handle

    assert locate(row_handle, ["button.other", "button.apply"], per_candidate_timeout_ms=5).matched_selector == "button.apply"


@pytest.mark.parametrize("bad", ["", "   "])
def test_blank_selector_is_rejected(bad):
    with pytest.raises(ValidationError):
        SelectorCandidate(value=bad)


def test_string_coerces_to_candidate():
    assert SelectorCandidate.model_validate("  #username ").value == "#username"
