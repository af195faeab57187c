"""
Reference formations shipped with the portal.

Coordinates are percentages of the pitch: x runs left to right (0-100), y runs
from our own goal line (0) to the opposition's (100). Slot order is part of the
formation's identity: tactic overrides address slots by index, so entries must
never be reordered once published.
"""
from uuid import NAMESPACE_URL, uuid5


def formation_id(name: str) -> str:
    """Stable id for a reference formation, identical across databases."""
    return str(uuid5(NAMESPACE_URL, f"clubportal:formation:{name}"))


def _slots(*entries):
    return [{'label': label, 'x': x, 'y': y} for label, x, y in entries]


REFERENCE_FORMATIONS = [
    {
        'name': '4-4-2 Classic',
        'squad_size': 11,
        'slots': _slots(
            ('GK', 50, 5),
            ('LB', 20, 25), ('CB', 40, 20), ('CB', 60, 20), ('RB', 80, 25),
            ('LM', 20, 50), ('CM', 40, 50), ('CM', 60, 50), ('RM', 80, 50),
            ('ST', 40, 80), ('ST', 60, 80),
        ),
    },
    {
        'name': '4-3-3 Attack',
        'squad_size': 11,
        'slots': _slots(
            ('GK', 50, 5),
            ('LB', 15, 25), ('CB', 38, 20), ('CB', 62, 20), ('RB', 85, 25),
            ('CM', 30, 50), ('CDM', 50, 42), ('CM', 70, 50),
            ('LW', 18, 78), ('ST', 50, 85), ('RW', 82, 78),
        ),
    },
    {
        'name': '4-2-3-1',
        'squad_size': 11,
        'slots': _slots(
            ('GK', 50, 5),
            ('LB', 15, 25), ('CB', 38, 20), ('CB', 62, 20), ('RB', 85, 25),
            ('CDM', 40, 40), ('CDM', 60, 40),
            ('LW', 20, 65), ('CAM', 50, 65), ('RW', 80, 65),
            ('ST', 50, 85),
        ),
    },
    {
        'name': '3-5-2',
        'squad_size': 11,
        'slots': _slots(
            ('GK', 50, 5),
            ('CB', 30, 20), ('CB', 50, 18), ('CB', 70, 20),
            ('LWB', 10, 50), ('CM', 35, 48), ('CDM', 50, 40), ('CM', 65, 48), ('RWB', 90, 50),
            ('ST', 40, 80), ('ST', 60, 80),
        ),
    },
    {
        'name': '9v9 3-3-2',
        'squad_size': 9,
        'slots': _slots(
            ('GK', 50, 5),
            ('LB', 25, 25), ('CB', 50, 20), ('RB', 75, 25),
            ('LM', 25, 50), ('CM', 50, 50), ('RM', 75, 50),
            ('ST', 40, 80), ('ST', 60, 80),
        ),
    },
    {
        'name': '7v7 2-3-1',
        'squad_size': 7,
        'slots': _slots(
            ('GK', 50, 5),
            ('CB', 35, 25), ('CB', 65, 25),
            ('LM', 20, 55), ('CM', 50, 50), ('RM', 80, 55),
            ('ST', 50, 80),
        ),
    },
]


def get_reference_formations():
    """Return the reference formations with their stable ids attached."""
    return [dict(entry, id=formation_id(entry['name'])) for entry in REFERENCE_FORMATIONS]
