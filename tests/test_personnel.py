import pytest

from burnops.schemas.burns import PersonnelRole, PersonRecord
from burnops.services.personnel import build_personnel_hours, parse_hours


@pytest.mark.parametrize("raw,expected", [
    ("4", 4.0),
    ("2,5", 2.5),
    (" 3.25 ", 3.25),
    (6, 6.0),
    ("", 0.0),
    ("abc", 0.0),
    ("-2", 0.0),
    ("nan", 0.0),
    (None, 0.0),
    (True, 0.0),
])
def test_parse_hours(raw, expected):
    assert parse_hours(raw) == expected


def test_only_selected_people_count():
    anna = PersonRecord.new("Anna Sanna", PersonnelRole.DIRETTORE_OPERAZIONI)
    bruno = PersonRecord.new("Bruno Piras", PersonnelRole.TORCISTA)
    carla = PersonRecord.new("Carla Deiana")
    hours = build_personnel_hours(
        [anna, bruno, carla],
        [anna.id, carla.id],
        {anna.id: "5", bruno.id: "8", carla.id: "x"},
    )
    assert hours.active_count == 2
    assert hours.total_hours == 5.0
    assert hours.per_person_hours == {anna.id: 5.0, carla.id: 0.0}
    assert [(p.name, p.role) for p in hours.participants] == [
        ("Anna Sanna", "Direttore Operazioni"),
        ("Carla Deiana", "Operatore Gauf"),
    ]


def test_wire_form_uses_short_keys():
    person = PersonRecord.new("Anna Sanna")
    wire = build_personnel_hours([person], [person.id], {person.id: "2"}).to_wire()
    assert wire["details"] == {person.id: 2.0}
    assert wire["total"] == 2.0
    assert wire["activeCount"] == 1


def test_selected_person_missing_from_roster_still_counts_hours():
    hours = build_personnel_hours([], ["ghost"], {"ghost": "3"})
    assert hours.total_hours == 3.0
    assert hours.active_count == 1
    assert hours.participants == []


def test_duplicate_selection_counts_once():
    person = PersonRecord.new("Anna Sanna")
    hours = build_personnel_hours([person], [person.id, person.id], {person.id: "2"})
    assert hours.active_count == 1
    assert hours.total_hours == 2.0
