import pytest
from datetime import date
from catalog.openlibrary import WorkRecord, EditionRecord
from catalog.services.edition_selector import EditionSelector


@pytest.fixture
def selector():
    return EditionSelector()


def edition(source_id, **fields):
    return EditionRecord(source_id=source_id, title=f"Edition {source_id}", **fields)


def test_no_candidates(selector):
    assert selector.select(WorkRecord(source_id="OL1W", title="Work"), []) is None


def test_declared_primary_wins(selector):
    work = WorkRecord(source_id="OL1W", title="Work", primary_edition_source_id="OL1M")
    candidates = [edition("OL1M", publish_year=1950), edition("OL2M", publish_year=2020)]
    assert selector.select(work, candidates).source_id == "OL1M"


def test_declared_primary_missing_falls_back_to_newest(selector):
    work = WorkRecord(source_id="OL1W", title="Work", primary_edition_source_id="OL9M")
    candidates = [edition("OL1M", publish_year=1950), edition("OL2M", publish_year=2020)]
    assert selector.select(work, candidates).source_id == "OL2M"


def test_full_date_beats_year_only_of_earlier_year(selector):
    """Test that a dated edition competes with year-only ones on Dec 31st."""
    work = WorkRecord(source_id="OL1W", title="Work")
    candidates = [
        edition("OL1M", publish_year=2019),
        edition("OL2M", publish_year=2020, publish_date="2020-03-01"),
        edition("OL3M"),
    ]
    assert selector.select(work, candidates).source_id == "OL2M"


def test_year_only_beats_date_in_same_year(selector):
    work = WorkRecord(source_id="OL1W", title="Work")
    candidates = [edition("OL1M", publish_date="2020-03-01"), edition("OL2M", publish_year=2020)]
    assert selector.select(work, candidates).source_id == "OL2M"


def test_ties_keep_first_candidate(selector):
    work = WorkRecord(source_id="OL1W", title="Work")
    candidates = [edition("OL1M", publish_year=2001), edition("OL2M", publish_year=2001)]
    assert selector.select(work, candidates).source_id == "OL1M"


def test_undated_candidates_pick_first(selector):
    work = WorkRecord(source_id="OL1W", title="Work")
    assert selector.select(work, [edition("OL1M"), edition("OL2M")]).source_id == "OL1M"


@pytest.mark.parametrize("fields,expected", [
    ({"publish_date": "1999-07-08"}, date(1999, 7, 8)),
    ({"publish_year": 1999}, date(1999, 12, 31)),
    ({}, date.min),
])
def test_effective_date(fields, expected):
    assert EditionSelector.effective_date(edition("OL1M", **fields)) == expected
