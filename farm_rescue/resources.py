"""
Storage on the farm: where every crop and animal lives between purchase and sale.
"""
from .entities import Animal, Crop

SEEDS = "seeds"
CROPS = "crops"
HARVESTED_CROPS = "harvested_crops"
YOUNG_ANIMALS = "young_animals"
ANIMALS = "animals"

COLLECTIONS = (SEEDS, CROPS, HARVESTED_CROPS, YOUNG_ANIMALS, ANIMALS)


class FarmInventory:
    """
    Container for the five inventory collections.
    seeds -> crops -> harvested_crops    (Crop)
    young_animals -> animals             (Animal)

    `crops` (growing plots) and `animals` (pens) have a fixed slot count.
    An entity is in exactly one collection at a time; moves never copy.
    """
    def __init__(self, config):
        self.max_crop_slots = config["MAX_CROP_SLOTS"]
        self.max_animal_slots = config["MAX_ANIMAL_SLOTS"]
        self.seeds = []
        self.crops = []
        self.harvested_crops = []
        self.young_animals = []
        self.animals = []

    def collection(self, name):
        if name not in COLLECTIONS:
            raise KeyError(name)
        return getattr(self, name)

    def find(self, name, entity_id):
        for entity in self.collection(name):
            if entity.id == entity_id:
                return entity
        return None

    def add(self, name, entity):
        self.collection(name).append(entity)

    def remove(self, name, entity_id):
        items = self.collection(name)
        for index, entity in enumerate(items):
            if entity.id == entity_id:
                return items.pop(index)
        return None

    def move(self, source, target, entity_id):
        entity = self.remove(source, entity_id)
        if entity is not None:
            self.add(target, entity)
        return entity

    # --- capacity ---

    def crop_slots_used(self):
        return len(self.crops)

    def animal_slots_used(self):
        return len(self.animals)

    def available_crop_slots(self):
        return max(0, self.max_crop_slots - len(self.crops))

    def available_animal_slots(self):
        return max(0, self.max_animal_slots - len(self.animals))

    def has_crop_capacity(self):
        return len(self.crops) < self.max_crop_slots

    def has_animal_capacity(self):
        return len(self.animals) < self.max_animal_slots

    def counts(self):
        return {name: len(self.collection(name)) for name in COLLECTIONS}

    def to_dict(self):
        return {name: [e.to_dict() for e in self.collection(name)] for name in COLLECTIONS}

    @classmethod
    def from_dict(cls, config, data, crop_table=None, animal_table=None):
        inventory = cls(config)
        speed = config.get("SPEED_MULTIPLIER", 1)
        for name in (SEEDS, CROPS, HARVESTED_CROPS):
            for item in data.get(name, []):
                inventory.add(name, Crop.from_dict(item, crop_table, speed))
        known = {}
        for name in (YOUNG_ANIMALS, ANIMALS):
            for item in data.get(name, []):
                inventory.add(name, Animal.from_dict(item, animal_table, speed, known))
        return inventory
