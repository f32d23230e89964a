import pytest

from blazeodm.config import Configuration, ConfigurationError
from blazeodm.identity import UUIDIdentityGenerator
from blazeodm.mapping import ChangeTracking
from blazeodm.mapping.converters import DateTimeConverter


def test_defaults():
    config = Configuration()
    assert config.discriminator_field == "__t"
    assert config.version_field == "__v"
    assert config.lock_field == "__l"
    assert config.change_tracking is ChangeTracking.DEFERRED_IMPLICIT
    assert config.identity_generator is None
    assert isinstance(config.converters.get("datetime"), DateTimeConverter)


def test_converter_registries_are_not_shared():
    first = Configuration()
    second = Configuration()
    first.converters.register("custom", DateTimeConverter())
    assert "custom" not in second.converters


def test_from_env_reads_prefixed_variables(monkeypatch):
    monkeypatch.setenv("BLAZEODM_DISCRIMINATOR_FIELD", "kind")
    monkeypatch.setenv("BLAZEODM_COLLECTION_PREFIX", "zoo_")
    monkeypatch.setenv("BLAZEODM_DATABASE", "zoo")
    monkeypatch.setenv("BLAZEODM_CHANGE_TRACKING", "explicit")

    config = Configuration.from_env()

    assert config.discriminator_field == "kind"
    assert config.collection_prefix == "zoo_"
    assert config.database_name == "zoo"
    assert config.change_tracking is ChangeTracking.DEFERRED_EXPLICIT


def test_from_env_keyword_arguments_win(monkeypatch):
    monkeypatch.setenv("APP_VERSION_FIELD", "rev")
    generator = UUIDIdentityGenerator()

    config = Configuration.from_env("APP_", version_field="version", identity_generator=generator)

    assert config.version_field == "version"
    assert config.identity_generator is generator


@pytest.mark.parametrize("value", ["deferred_implicit", "Deferred-Implicit", "implicit"])
def test_change_tracking_spellings(monkeypatch, value):
    monkeypatch.setenv("BLAZEODM_CHANGE_TRACKING", value)
    assert Configuration.from_env().change_tracking is ChangeTracking.DEFERRED_IMPLICIT


def test_invalid_change_tracking_raises(monkeypatch):
    monkeypatch.setenv("BLAZEODM_CHANGE_TRACKING", "eager")
    with pytest.raises(ConfigurationError):
        Configuration.from_env()


def test_uuid_identity_generator():
    generator = UUIDIdentityGenerator()
    identity = generator.generate()

    assert generator.validate(identity)
    assert not generator.validate("not-an-id")
    assert generator.from_string(identity) == identity
    assert generator.are_equal(identity, identity)
    with pytest.raises(ValueError):
        generator.from_string("nope")
