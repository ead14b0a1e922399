from lexfill.composer import fill_text
from lexfill.models import Placeholder
from lexfill.resolver import FillMode, occurrence_suffix, resolve


def ph(pid, name, original, position):
    return Placeholder(id=str(pid), name=name, original=original, description=name, position=position)


def test_suffix_parsing():
    assert occurrence_suffix("by_2") == 2
    assert occurrence_suffix("by_12") == 12
    assert occurrence_suffix("company_name") is None


def test_numbered_duplicates_target_their_occurrence_rightmost_first():
    placeholders = [ph(1, "by_1", "By:", 10), ph(2, "by_2", "By:", 40), ph(3, "company_name", "[Company Name]", 0)]
    jobs = resolve({"by_1": "J. Smith", "company_name": "Acme", "by_2": "A. Jones"}, placeholders)

    assert [j.name for j in jobs] == ["by_2", "by_1", "company_name"]
    assert [j.occurrence_index for j in jobs] == [2, 1, 1]
    assert jobs[0].original_text == "By:"
    assert jobs[0].position == 40


def test_unknown_names_dropped_and_none_becomes_blank():
    jobs = resolve({"ghost": "x", "title": None}, [ph(1, "title", "[Title]", 5)])
    assert len(jobs) == 1
    assert jobs[0].value == ""


def test_unshared_literal_follows_fill_mode():
    placeholders = [ph(1, "name", "[Name]", 0)]
    assert resolve({"name": "A"}, placeholders)[0].occurrence_index == 1
    assert resolve({"name": "A"}, placeholders, FillMode.ALL)[0].occurrence_index is None


def test_number_inside_label_is_not_an_occurrence():
    jobs = resolve({"section_2": "Payment"}, [ph(1, "section_2", "[Section 2]", 3)])
    assert jobs[0].occurrence_index == 1


def test_shared_literal_without_suffix_ranks_by_position():
    placeholders = [ph(1, "effective_date", "Date:", 200), ph(2, "signing_date", "Date:", 20)]
    jobs = {j.name: j for j in resolve({"effective_date": "a", "signing_date": "b"}, placeholders)}
    assert jobs["signing_date"].occurrence_index == 1
    assert jobs["effective_date"].occurrence_index == 2


def test_equal_positions_still_processed_highest_occurrence_first():
    placeholders = [ph(1, "by_1", "By:", 0), ph(2, "by_2", "By:", 0)]
    jobs = resolve({"by_1": "x", "by_2": "y"}, placeholders)
    assert [j.occurrence_index for j in jobs] == [2, 1]


def test_descending_order_keeps_both_replacements_intact():
    text = "Date: " + "." * 94 + " Date: end"
    first, second = text.find("Date:"), text.rfind("Date:")
    placeholders = [ph(1, "date_1", "Date:", first), ph(2, "date_2", "Date:", second)]

    out = fill_text(text, placeholders, {"date_1": "January 1, 2030 (long)", "date_2": "X"})

    assert out.startswith("January 1, 2030 (long) ")
    assert out.endswith(" X end")
    assert "Date:" not in out
