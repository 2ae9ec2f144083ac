from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.orm import sessionmaker

from burnops.db import make_engine
from burnops.schemas.burns import (
    DEFAULT_OPERATION_NAME,
    FuelModel,
    OperationRecord,
    PersonnelRole,
    PersonRecord,
    WeatherSnapshot,
)
from burnops.services.local_store import LocalRecordStore, LocalStoreError


@pytest.fixture
def store(session_factory):
    return LocalRecordStore(session_factory)


def _record(**kw):
    return OperationRecord.new(**kw)


def test_insert_and_read_back_every_field(store):
    created = datetime(2024, 3, 2, 8, 30, tzinfo=timezone.utc)
    record = _record(
        name="Monte Ortobene",
        location_label="Nuoro",
        fuel_model=FuelModel.MACCHIA_ALTA,
        weather=WeatherSnapshot(temp="18,5", humidity=55, wind="6", aspect="Nord"),
        area_geojson={"type": "Polygon", "coordinates": [[[9.0, 40.0], [9.1, 40.0], [9.1, 40.1], [9.0, 40.0]]]},
        ai_report="**Rischio Basso**",
        created_at=created,
    )
    store.insert_operation(record)

    got = store.get_operation(record.id)
    assert got == record
    assert got.created_at == created
    assert got.weather.temperature == 18.5
    assert got.synced is False


def test_blank_name_gets_default(store):
    record = _record(name="   ")
    store.insert_operation(record)
    assert store.get_operation(record.id).name == DEFAULT_OPERATION_NAME


def test_query_unsynced_and_mark_synced(store):
    a, b = _record(name="a"), _record(name="b")
    store.insert_operation(a)
    store.insert_operation(b)

    assert {r.id for r in store.query_unsynced_operations()} == {a.id, b.id}
    assert store.mark_synced(a.id) is True
    assert [r.id for r in store.query_unsynced_operations()] == [b.id]
    # already synced, and unknown ids, are no-ops
    assert store.mark_synced(a.id) is False
    assert store.mark_synced("missing") is False
    assert store.get_operation(a.id).synced is True


def test_list_all_newest_first(store):
    now = datetime.now(timezone.utc)
    old = _record(name="old", created_at=now - timedelta(days=2))
    new = _record(name="new", created_at=now)
    store.insert_operation(old)
    store.insert_operation(new)
    assert [r.name for r in store.list_all_operations()] == ["new", "old"]


def test_duplicate_id_is_a_store_error(store):
    record = _record()
    store.insert_operation(record)
    with pytest.raises(LocalStoreError):
        store.insert_operation(record)


def test_delete_operation(store):
    record = _record()
    store.insert_operation(record)
    assert store.delete_operation(record.id) is True
    assert store.delete_operation(record.id) is False
    assert store.get_operation(record.id) is None


def test_personnel_crud_sorted_by_name(store):
    zeta = PersonRecord.new("Zeta Pinna", PersonnelRole.TORCISTA)
    anna = PersonRecord.new("Anna Sanna")
    store.insert_person(zeta)
    store.insert_person(anna)

    assert [p.name for p in store.list_personnel()] == ["Anna Sanna", "Zeta Pinna"]
    assert store.list_personnel()[1].role is PersonnelRole.TORCISTA
    assert store.delete_person(zeta.id) is True
    assert store.delete_person(zeta.id) is False


def test_missing_schema_surfaces_as_store_error(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'empty.db'}")
    store = LocalRecordStore(sessionmaker(bind=engine, future=True))
    with pytest.raises(LocalStoreError):
        store.insert_operation(_record())
    with pytest.raises(LocalStoreError):
        store.query_unsynced_operations()
