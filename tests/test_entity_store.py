"""Entity store contract, run against both backings."""

import asyncio
import json

import pytest

from app.core.entities import APPLICANTS, ASSIGNMENTS, USERS
from app.errors import ConflictError, StorageFailureError, ValidationError
from app.repositories.entity_store import parse_record_id
from app.repositories.file_store import JsonFileStore


@pytest.mark.unit
def test_create_then_get_returns_payload_with_id(open_store):
    async def main():
        async with open_store() as store:
            payload = {"name": "Ana", "positionAppliedFor": "Field Collector", "tags": ["a", "b"], "age": 30}
            created = await store.create(APPLICANTS, payload)

            assert created["id"] == 1
            fetched = await store.get(APPLICANTS, created["id"])
            assert fetched == {**payload, "id": 1}
            # The caller's dict is not captured by the store
            assert "id" not in payload

    asyncio.run(main())


@pytest.mark.unit
def test_ids_start_at_one_and_ignore_payload_id(open_store):
    async def main():
        async with open_store() as store:
            first = await store.create(APPLICANTS, {"name": "A", "id": 99})
            second = await store.create(APPLICANTS, {"name": "B"})
            assert (first["id"], second["id"]) == (1, 2)

    asyncio.run(main())


@pytest.mark.unit
def test_update_is_shallow_merge_and_keeps_id(open_store):
    async def main():
        async with open_store() as store:
            created = await store.create(APPLICANTS, {"name": "A", "status": "pending", "meta": {"x": 1}})
            updated = await store.update(APPLICANTS, created["id"], {"status": "approved", "meta": {"y": 2}, "id": 50})

            assert updated == {"id": created["id"], "name": "A", "status": "approved", "meta": {"y": 2}}
            assert await store.get(APPLICANTS, created["id"]) == updated
            assert await store.get(APPLICANTS, 50) is None

    asyncio.run(main())


@pytest.mark.unit
def test_update_and_get_missing_record(open_store):
    async def main():
        async with open_store() as store:
            assert await store.get(APPLICANTS, 404) is None
            assert await store.update(APPLICANTS, 404, {"name": "x"}) is None
            assert await store.delete(APPLICANTS, 404) is False

    asyncio.run(main())


@pytest.mark.unit
def test_list_is_in_id_order_and_stable(open_store):
    async def main():
        async with open_store() as store:
            for name in ("a", "b", "c"):
                await store.create(APPLICANTS, {"name": name})
            await store.update(APPLICANTS, 1, {"name": "a2"})

            first = await store.list(APPLICANTS)
            second = await store.list(APPLICANTS)
            assert [r["id"] for r in first] == [1, 2, 3]
            assert first == second

    asyncio.run(main())


@pytest.mark.unit
def test_deleted_ids_are_not_reused(open_store):
    async def main():
        async with open_store() as store:
            await store.create(APPLICANTS, {"name": "a"})
            last = await store.create(APPLICANTS, {"name": "b"})
            assert await store.delete(APPLICANTS, last["id"]) is True

            again = await store.create(APPLICANTS, {"name": "c"})
            assert again["id"] == last["id"] + 1

    asyncio.run(main())


@pytest.mark.unit
def test_returned_records_are_copies(open_store):
    async def main():
        async with open_store() as store:
            created = await store.create(APPLICANTS, {"name": "a", "meta": {"k": 1}})
            created["meta"]["k"] = 2
            fetched = await store.get(APPLICANTS, created["id"])
            fetched["name"] = "changed"

            assert await store.get(APPLICANTS, created["id"]) == {"id": created["id"], "name": "a", "meta": {"k": 1}}

    asyncio.run(main())


@pytest.mark.unit
def test_settings_defaults_and_merge(open_store):
    async def main():
        async with open_store() as store:
            assert await store.get_settings() == {"manPowerLimit": 50}
            merged = await store.update_settings({"manPowerLimit": 10, "companyName": "Constantino"})
            assert merged == {"manPowerLimit": 10, "companyName": "Constantino"}
            assert await store.get_settings() == merged

    asyncio.run(main())


@pytest.mark.unit
def test_failed_transaction_discards_every_write(open_store):
    async def main():
        async with open_store() as store:
            with pytest.raises(ValidationError):
                async with store.transaction() as tx:
                    await tx.create(APPLICANTS, {"name": "a"})
                    await tx.create(ASSIGNMENTS, {"applicantId": 1, "status": "active"})
                    raise ValidationError("abort")

            assert await store.list(APPLICANTS) == []
            assert await store.list(ASSIGNMENTS) == []

    asyncio.run(main())


@pytest.mark.unit
def test_initial_users_are_seeded_once(open_store):
    users = [{"email": "admin@co.com", "role": "admin", "password": "x"}]

    async def main():
        async with open_store(initial_users=users) as store:
            seeded = await store.list(USERS)
            assert [(u["id"], u["email"]) for u in seeded] == [(1, "admin@co.com")]
            # A second initialize on a non-empty store adds nothing
            await store.initialize()
            assert len(await store.list(USERS)) == 1

    asyncio.run(main())


@pytest.mark.unit
def test_unknown_collection_is_rejected(open_store):
    async def main():
        async with open_store() as store:
            with pytest.raises(ValueError):
                await store.list("companies")

    asyncio.run(main())


@pytest.mark.unit
def test_file_document_shape(tmp_path):
    path = tmp_path / "store.json"

    async def main():
        store = JsonFileStore(path)
        await store.initialize()
        await store.create(APPLICANTS, {"name": "a"})

    asyncio.run(main())

    document = json.loads(path.read_text(encoding="utf-8"))
    for key in ("users", "applicants", "assignments", "manpowerRequests", "sessions", "auditLogs"):
        assert isinstance(document[key], list)
    assert document["settings"] == {"manPowerLimit": 50}
    assert document["applicants"] == [{"name": "a", "id": 1}]
    assert not (tmp_path / "store.json.tmp").exists()


@pytest.mark.unit
def test_file_store_fills_missing_keys_of_an_older_document(tmp_path):
    path = tmp_path / "store.json"
    path.write_text(json.dumps({"applicants": [{"id": 4, "name": "legacy"}]}), encoding="utf-8")

    async def main():
        store = JsonFileStore(path)
        assert await store.list(ASSIGNMENTS) == []
        created = await store.create(APPLICANTS, {"name": "new"})
        assert created["id"] == 5

    asyncio.run(main())


@pytest.mark.unit
def test_corrupt_file_raises_storage_failure_and_is_left_alone(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("{not json", encoding="utf-8")

    async def main():
        store = JsonFileStore(path)
        with pytest.raises(StorageFailureError):
            await store.list(APPLICANTS)
        with pytest.raises(StorageFailureError):
            await store.create(APPLICANTS, {"name": "a"})

    asyncio.run(main())
    assert path.read_text(encoding="utf-8") == "{not json"


@pytest.mark.unit
def test_undecodable_file_raises_storage_failure(tmp_path):
    path = tmp_path / "store.json"
    path.write_bytes(b'{"users": ["\xff\xfe"]}')

    async def main():
        store = JsonFileStore(path)
        with pytest.raises(StorageFailureError):
            await store.list(USERS)

    asyncio.run(main())


@pytest.mark.unit
@pytest.mark.parametrize("section", ["settings", "sequences"])
def test_malformed_document_section_raises_storage_failure(tmp_path, section):
    path = tmp_path / "store.json"
    path.write_text(json.dumps({"applicants": [], section: [1, 2]}), encoding="utf-8")

    async def main():
        store = JsonFileStore(path)
        with pytest.raises(StorageFailureError):
            await store.get_settings()

    asyncio.run(main())


@pytest.mark.unit
def test_sql_unique_email_maps_to_conflict(tmp_path):
    from app.db.session import build_engine
    from app.repositories.sql_store import SqlEntityStore

    async def main():
        store = SqlEntityStore(build_engine(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}"))
        await store.initialize()
        try:
            await store.create(USERS, {"email": "a@co.com", "role": "hr"})
            with pytest.raises(ConflictError) as exc_info:
                await store.create(USERS, {"email": "a@co.com", "role": "admin"})
            assert exc_info.value.rule == "unique_violation"
        finally:
            await store.close()

    asyncio.run(main())


@pytest.mark.unit
def test_sql_one_active_assignment_per_applicant(tmp_path):
    from app.db.session import build_engine
    from app.repositories.sql_store import SqlEntityStore

    async def main():
        store = SqlEntityStore(build_engine(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}"))
        await store.initialize()
        try:
            await store.create(ASSIGNMENTS, {"applicantId": 7, "status": "active"})
            await store.create(ASSIGNMENTS, {"applicantId": 7, "status": "cancelled"})
            with pytest.raises(ConflictError):
                await store.create(ASSIGNMENTS, {"applicantId": 7, "status": "active"})
            assert len(await store.list(ASSIGNMENTS)) == 2
        finally:
            await store.close()

    asyncio.run(main())


@pytest.mark.unit
@pytest.mark.parametrize("value", [None, "", "abc", True])
def test_parse_record_id_rejects_non_numeric(value):
    with pytest.raises(ValidationError):
        parse_record_id(value)


@pytest.mark.unit
def test_parse_record_id_accepts_numeric_strings():
    assert parse_record_id("12") == 12
    assert parse_record_id(3) == 3


@pytest.mark.unit
def test_store_factory_selects_backing(tmp_path):
    from app.core.config import Settings
    from app.repositories.sql_store import SqlEntityStore
    from app.repositories.store_factory import build_default_users, create_store

    file_settings = Settings(_env_file=None, STORE_BACKEND="file", DATA_FILE=str(tmp_path / "s.json"), SEED_DEFAULT_USERS=False)
    assert isinstance(create_store(file_settings), JsonFileStore)

    sql_settings = Settings(_env_file=None, STORE_BACKEND="SQL", DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 's.db'}", SEED_DEFAULT_USERS=False)
    sql_store = create_store(sql_settings)
    assert isinstance(sql_store, SqlEntityStore)
    asyncio.run(sql_store.close())

    with pytest.raises(ValueError):
        create_store(Settings(_env_file=None, STORE_BACKEND="redis"))

    users = build_default_users(Settings(_env_file=None))
    assert [u["email"] for u in users] == [
        "boss@constantinolawoffice.com",
        "hr@constantinolawoffice.com",
        "tl@constantinolawoffice.com",
        "admin@constantinolawoffice.com",
    ]
    assert [u["role"] for u in users] == ["boss", "hr", "team-lead", "admin"]
    assert all(u["password"].startswith("$2") for u in users)
    assert users[2]["tlAssignmentLimit"] == 5
