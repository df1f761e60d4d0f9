import re

from workdocs.infrastructure.config.categories import DOCUMENT_CATEGORIES, find_category, find_category_by_name


def test_category_wids_are_unique_and_well_formed():
    wids = [c.wid for c in DOCUMENT_CATEGORIES]
    assert len(wids) == len(set(wids)) == 13
    assert all(re.fullmatch(r"[a-f0-9]{32}", wid) for wid in wids)


def test_find_category_by_wid():
    assert find_category("7166a581648910019e415635dd8e0000").name == "Compensation"
    assert find_category("0" * 32) is None


def test_find_category_by_name_ignores_case():
    assert find_category_by_name("  employment contract ").wid == "cb0535d1d7d7100c1c87440632970000"
    assert find_category_by_name("Payslips") is None
