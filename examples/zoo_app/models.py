"""
Document definitions for the zoo example.
"""

from __future__ import annotations

import enum

from blazeodm.core import (
    BooleanField,
    DateTimeField,
    Document,
    EmbeddedDocument,
    EmbeddedField,
    EnumField,
    FloatField,
    IntegerField,
    ListField,
    StringField,
)


class Diet(enum.Enum):
    CARNIVORE = "carnivore"
    HERBIVORE = "herbivore"
    OMNIVORE = "omnivore"


class Enclosure(EmbeddedDocument):
    zone = StringField(nullable=False)
    area_sqm = FloatField()


class Feeding(EmbeddedDocument):
    food = StringField(nullable=False)
    grams = IntegerField(default=0)


class Animal(Document):
    name = StringField(nullable=False, max_length=80, index=True)
    diet = EnumField(Diet)
    arrived_at = DateTimeField(auto_now_add=True)
    enclosure = EmbeddedField(Enclosure)
    feedings = ListField(Feeding)
    tags = ListField(StringField())

    class Meta:
        collection = "animals"
        versioned = True


class Cat(Animal):
    indoor = BooleanField(default=False)


class Dog(Animal):
    breed = StringField()
