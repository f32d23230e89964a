import pytest

from blazeodm.drivers import (
    DocumentUpdate,
    DriverConnectionError,
    DriverExecutionError,
    MemoryDriver,
    Namespace,
    VersionConflictError,
)

PETS = Namespace("pets", "zoo")


@pytest.fixture
def driver():
    return MemoryDriver().connect()


def test_requires_connection():
    with pytest.raises(DriverConnectionError):
        MemoryDriver().find_one(PETS, "x")


def test_insert_find_and_copy_isolation(driver):
    document = {"_id": "a", "tags": ["x"]}
    driver.insert_many(PETS, [document])
    document["tags"].append("y")

    stored = driver.find_one(PETS, "a")
    assert stored == {"_id": "a", "tags": ["x"]}
    stored["tags"].append("z")
    assert driver.find_one(PETS, "a")["tags"] == ["x"]


def test_insert_batch_is_all_or_nothing(driver):
    driver.insert_many(PETS, [{"_id": "a"}])

    with pytest.raises(DriverExecutionError):
        driver.insert_many(PETS, [{"_id": "b"}, {"_id": "a"}])
    with pytest.raises(DriverExecutionError):
        driver.insert_many(PETS, [{"name": "no id"}])
    assert driver.find_one(PETS, "b") is None


def test_update_sets_and_unsets_fields(driver):
    driver.insert_many(PETS, [{"_id": "a", "name": "Rex", "age": 3}])

    applied = driver.update_many(PETS, [DocumentUpdate("a", {"name": "Max"}, ["age"])])

    assert applied == 1
    assert driver.find_one(PETS, "a") == {"_id": "a", "name": "Max"}


def test_versioned_update_conflict_leaves_batch_unapplied(driver):
    driver.insert_many(PETS, [{"_id": "a", "__v": 1}, {"_id": "b", "__v": 4}])
    updates = [
        DocumentUpdate("a", {"__v": 2}, version_field="__v", expected_version=1),
        DocumentUpdate("b", {"__v": 2}, version_field="__v", expected_version=1),
    ]

    with pytest.raises(VersionConflictError) as exc:
        driver.update_many(PETS, updates)

    assert exc.value.identities == ["b"]
    assert driver.find_one(PETS, "a")["__v"] == 1


def test_delete_counts_removed_documents(driver):
    driver.insert_many(PETS, [{"_id": "a"}, {"_id": "b"}])

    assert driver.delete_many(PETS, ["a", "missing"]) == 1
    assert [doc["_id"] for doc in driver.documents(PETS)] == ["b"]
    assert driver.operations[-1] == ("delete", PETS, 1)


def test_namespaces_are_isolated(driver):
    driver.insert_many(PETS, [{"_id": "a"}])
    assert driver.find_one(Namespace("pets"), "a") is None
    assert str(PETS) == "zoo.pets"
