"""
Zoo example showcasing polymorphic documents, embedded documents and
change tracking on top of the SQLite document driver.
"""

from __future__ import annotations

from typing import Any, Dict, List

from blazeodm.config import Configuration
from blazeodm.core import DeclarativeMappingProvider
from blazeodm.drivers import ConnectionConfig, SQLiteDriver
from blazeodm.persistence import Session, SessionFactory

from .models import Animal, Cat, Diet, Dog, Enclosure, Feeding


def bootstrap_factory(dsn: str = "sqlite:///:memory:") -> SessionFactory:
    provider = DeclarativeMappingProvider(Enclosure, Feeding, Animal, Cat, Dog)
    return SessionFactory(
        Configuration(),
        provider,
        SQLiteDriver(),
        connection_config=ConnectionConfig.from_dsn(dsn),
    )


def seed_sample_data(session: Session) -> Dict[str, List[Any]]:
    cats = [
        Cat(name="Tom", diet=Diet.CARNIVORE, indoor=True, enclosure=Enclosure(zone="north", area_sqm=12.5)),
        Cat(name="Felix", diet=Diet.CARNIVORE, tags=["playful"]),
    ]
    dogs = [
        Dog(
            name="Rex",
            diet=Diet.OMNIVORE,
            breed="collie",
            feedings=[Feeding(food="kibble", grams=300), Feeding(food="bone", grams=50)],
        ),
    ]
    for animal in [*cats, *dogs]:
        session.add(animal)
    session.flush()
    return {"cats": [cat.id for cat in cats], "dogs": [dog.id for dog in dogs]}


def describe_animals(session: Session, identities: List[Any]) -> List[Dict[str, Any]]:
    described = []
    for identity in identities:
        animal = session.find(Animal, identity)
        if animal is None:
            continue
        described.append(
            {
                "kind": type(animal).__name__,
                "name": animal.name,
                "diet": animal.diet.value if animal.diet else None,
                "feedings": len(animal.feedings or []),
            }
        )
    return described


def run_demo() -> List[Dict[str, Any]]:
    factory = bootstrap_factory()
    try:
        with factory() as session:
            seeded = seed_sample_data(session)

        with factory() as session:
            rex = session.find(Animal, seeded["dogs"][0])
            rex.tags = ["good boy"]

        with factory() as session:
            return describe_animals(session, seeded["cats"] + seeded["dogs"])
    finally:
        factory.close()
