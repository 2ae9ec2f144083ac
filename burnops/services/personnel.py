from typing import Any, Iterable, List, Mapping

from ..schemas.burns import PersonnelHours, Participant, PersonRecord


def parse_hours(raw: Any) -> float:
    """Hours typed by the crew lead; anything unreadable or negative counts as 0."""
    if raw is None or isinstance(raw, bool):
        return 0.0
    try:
        value = float(str(raw).strip().replace(",", "."))
    except ValueError:
        return 0.0
    if value != value or value < 0:  # NaN or negative
        return 0.0
    return value


def build_personnel_hours(
    roster: List[PersonRecord],
    selected_ids: Iterable[str],
    hours_log: Mapping[str, Any],
) -> PersonnelHours:
    """
    Aggregate the crew hours for one operation.

    Only people currently selected count toward the total. Participants are
    copied (id, name, role) in roster order so the saved record keeps them even
    if the roster entry is later edited or removed. Selected ids that are no
    longer in the roster still count for hours but cannot be snapshotted.
    """
    selected = list(dict.fromkeys(str(i) for i in selected_ids))
    selected_set = set(selected)
    per_person = {pid: parse_hours(hours_log.get(pid)) for pid in selected if pid in hours_log}
    participants = [
        Participant(id=p.id, name=p.name, role=p.role.value)
        for p in roster
        if p.id in selected_set
    ]
    return PersonnelHours(
        per_person_hours=per_person,
        total_hours=sum(per_person.values()),
        active_count=len(selected),
        participants=participants,
    )
