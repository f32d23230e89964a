import pytest

from blazeodm.config import Configuration
from blazeodm.core import DeclarativeMappingProvider, Document, EmbeddedDocument, IntegerField, StringField
from blazeodm.drivers import MemoryDriver, Namespace
from blazeodm.hooks import HookDispatcher
from blazeodm.mapping import ChangeTracking, MappingRegistry, UnmappedTypeError
from blazeodm.persistence import (
    DetachedObjectError,
    InvalidStateError,
    MissingIdentityError,
    ObjectState,
    UnitOfWork,
    UnknownDiscriminatorError,
)


class Animal(Document):
    name = StringField()

    class Meta:
        collection = "animals"


class Cat(Animal):
    lives = IntegerField(default=9)


class Dog(Animal):
    breed = StringField()


class Invoice(Document):
    total = IntegerField()

    class Meta:
        change_tracking = ChangeTracking.DEFERRED_EXPLICIT


class Tag(EmbeddedDocument):
    label = StringField()


class Stranger:
    pass


class CountingGenerator:
    def __init__(self):
        self.value = 0

    def generate(self):
        self.value += 1
        return f"id-{self.value}"

    def validate(self, value):
        return isinstance(value, str)

    def from_string(self, text):
        return text

    def are_equal(self, a, b):
        return a == b


@pytest.fixture
def registry():
    provider = DeclarativeMappingProvider(Animal, Cat, Dog, Invoice, Tag)
    return MappingRegistry.build(provider.get_mapping())


@pytest.fixture
def driver():
    return MemoryDriver().connect()


@pytest.fixture
def uow(driver, registry):
    return UnitOfWork(driver, registry, hooks=HookDispatcher())


def test_new_object_state(uow):
    assert uow.get_state(Cat(name="Tom")) is ObjectState.NEW


def test_save_new_assigns_identity_and_schedules_insert(uow):
    cat = Cat(name="Tom")
    uow.save(cat)

    assert cat.id is not None
    assert uow.get_state(cat) is ObjectState.MANAGED
    assert uow.contains(cat)
    assert uow.scheduled_insertions == [cat.id]


def test_save_uses_configured_identity_generator(driver, registry):
    config = Configuration(identity_generator=CountingGenerator())
    uow = UnitOfWork(driver, registry, config=config, hooks=HookDispatcher())
    cat = Cat(name="Tom")
    uow.save(cat)
    assert cat.id == "id-1"


def test_save_then_remove_new_object_leaves_nothing_scheduled(uow):
    cat = Cat(name="Tom")
    uow.save(cat)
    uow.remove(cat)

    assert uow.scheduled_insertions == []
    assert uow.scheduled_deletions == []
    assert uow.scheduled_updates == []
    assert uow.get_state(cat) is ObjectState.DETACHED
    assert len(uow.identity_map) == 0


def test_remove_new_object_is_noop(uow):
    cat = Cat(name="Tom")
    uow.remove(cat)
    assert uow.get_state(cat) is ObjectState.NEW


def test_save_managed_explicit_schedules_dirty_check(uow):
    invoice = uow.load(Invoice, {"_id": "inv-1", "total": 10})
    uow.save(invoice)

    assert uow.scheduled_dirty_checks == ["inv-1"]


def test_save_managed_implicit_is_noop(uow):
    cat = uow.load(Animal, {"_id": "cat-1", "__t": "Cat", "name": "Tom"})
    uow.save(cat)

    assert uow.scheduled_dirty_checks == []
    assert uow.scheduled_insertions == []


def test_remove_managed_schedules_single_delete(uow):
    cat = uow.load(Animal, {"_id": "cat-1", "__t": "Cat", "name": "Tom"})
    uow.remove(cat)
    uow.remove(cat)

    assert uow.get_state(cat) is ObjectState.REMOVED
    assert "cat-1" not in uow.identity_map
    assert uow.scheduled_deletions == ["cat-1"]

    fresh = uow.load(Animal, {"_id": "cat-1", "__t": "Cat", "name": "Tom"})
    assert fresh is not cat
    assert uow.get_state(fresh) is ObjectState.MANAGED
    assert uow.get_state(cat) is ObjectState.REMOVED
    assert uow.scheduled_deletions == ["cat-1"]


def test_save_removed_object_is_rejected(uow):
    cat = uow.load(Cat, {"_id": "cat-1", "__t": "Cat"})
    uow.remove(cat)

    with pytest.raises(InvalidStateError):
        uow.save(cat)


def test_detached_object_is_rejected(uow):
    cat = Cat(name="Tom")
    cat.id = "outside"

    assert uow.get_state(cat) is ObjectState.DETACHED
    with pytest.raises(DetachedObjectError):
        uow.save(cat)
    with pytest.raises(DetachedObjectError):
        uow.remove(cat)


def test_unmapped_and_embedded_objects_are_rejected(uow):
    with pytest.raises(UnmappedTypeError):
        uow.save(Stranger())
    with pytest.raises(UnmappedTypeError):
        uow.remove(Tag(label="x"))


def test_load_returns_identity_mapped_instance(uow):
    document = {"_id": "dog-1", "__t": "Dog", "name": "Rex", "breed": "collie"}
    first = uow.load(Animal, document)
    second = uow.load(Dog, dict(document, name="Other"))

    assert first is second
    assert isinstance(first, Dog)
    assert first.name == "Rex"
    assert first.breed == "collie"


def test_load_without_discriminator_uses_requested_type(uow):
    animal = uow.load(Animal, {"_id": "a-1", "name": "Generic"})
    assert type(animal) is Animal


def test_load_requires_identity(uow):
    with pytest.raises(MissingIdentityError):
        uow.load(Animal, {"name": "Nobody"})


def test_load_rejects_unknown_discriminator(uow):
    with pytest.raises(UnknownDiscriminatorError) as exc:
        uow.load(Animal, {"_id": "x", "__t": "Bird"})
    assert "Bird" in str(exc.value)


def test_load_rejects_sibling_type(uow):
    with pytest.raises(InvalidStateError):
        uow.load(Dog, {"_id": "x", "__t": "Cat"})


def test_find_uses_identity_map_then_driver(uow, driver):
    driver.insert_many(Namespace("animals"), [{"_id": "cat-9", "__t": "Cat", "name": "Kit"}])

    found = uow.find(Animal, "cat-9")
    assert isinstance(found, Cat)
    assert uow.find(Cat, "cat-9") is found
    assert uow.find(Animal, "missing") is None
    assert driver.operations == [("insert", Namespace("animals"), 1)]


def test_detach_discards_pending_work(uow):
    cat = Cat(name="Tom")
    uow.save(cat)
    uow.detach(cat)

    assert uow.get_state(cat) is ObjectState.DETACHED
    assert uow.scheduled_insertions == []


def test_detach_removed_object(uow):
    cat = uow.load(Cat, {"_id": "cat-1"})
    uow.remove(cat)
    uow.detach(cat)

    assert uow.scheduled_deletions == []
    assert uow.get_state(cat) is ObjectState.DETACHED


def test_clear_forgets_everything(uow):
    uow.save(Cat(name="Tom"))
    uow.load(Invoice, {"_id": "inv-1"})
    uow.clear()

    assert len(uow.identity_map) == 0
    assert uow.scheduled_insertions == []


def test_deleted_object_stays_removed_after_flush(uow, driver):
    cat = uow.load(Cat, {"_id": "cat-1", "__t": "Cat", "name": "Tom"})
    uow.remove(cat)
    assert uow.flush().deleted == ["cat-1"]

    assert uow.get_state(cat) is ObjectState.REMOVED
    uow.remove(cat)
    assert uow.scheduled_deletions == []
    with pytest.raises(InvalidStateError):
        uow.save(cat)

    uow.detach(cat)
    assert uow.get_state(cat) is ObjectState.DETACHED
