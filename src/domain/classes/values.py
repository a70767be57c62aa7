"""Ordered class value sets. The integer value of a member is its rank."""

from __future__ import annotations

from enum import IntEnum


class IIDXDans(IntEnum):
    KYU_7 = 0
    KYU_6 = 1
    KYU_5 = 2
    KYU_4 = 3
    KYU_3 = 4
    KYU_2 = 5
    KYU_1 = 6
    DAN_1 = 7
    DAN_2 = 8
    DAN_3 = 9
    DAN_4 = 10
    DAN_5 = 11
    DAN_6 = 12
    DAN_7 = 13
    DAN_8 = 14
    DAN_9 = 15
    DAN_10 = 16
    CHUUDEN = 17
    KAIDEN = 18


class SDVXVFClasses(IntEnum):
    SIENNA_I = 0
    SIENNA_II = 1
    SIENNA_III = 2
    SIENNA_IV = 3
    COBALT_I = 4
    COBALT_II = 5
    COBALT_III = 6
    COBALT_IV = 7
    DANDELION_I = 8
    DANDELION_II = 9
    DANDELION_III = 10
    DANDELION_IV = 11
    CYAN_I = 12
    CYAN_II = 13
    CYAN_III = 14
    CYAN_IV = 15
    SCARLET_I = 16
    SCARLET_II = 17
    SCARLET_III = 18
    SCARLET_IV = 19
    CORAL_I = 20
    CORAL_II = 21
    CORAL_III = 22
    CORAL_IV = 23
    ARGENTO_I = 24
    ARGENTO_II = 25
    ARGENTO_III = 26
    ARGENTO_IV = 27
    ELDORA_I = 28
    ELDORA_II = 29
    ELDORA_III = 30
    ELDORA_IV = 31
    CRIMSON_I = 32
    CRIMSON_II = 33
    CRIMSON_III = 34
    CRIMSON_IV = 35
    IMPERIAL_I = 36
    IMPERIAL_II = 37
    IMPERIAL_III = 38
    IMPERIAL_IV = 39


class GitadoraColours(IntEnum):
    WHITE = 0
    ORANGE = 1
    ORANGE_GRADIENT = 2
    YELLOW = 3
    YELLOW_GRADIENT = 4
    GREEN = 5
    GREEN_GRADIENT = 6
    BLUE = 7
    BLUE_GRADIENT = 8
    PURPLE = 9
    PURPLE_GRADIENT = 10
    RED = 11
    RED_GRADIENT = 12
    BRONZE = 13
    SILVER = 14
    GOLD = 15
    RAINBOW = 16


class WACCAColours(IntEnum):
    ASH = 0
    NAVY = 1
    YELLOW = 2
    RED = 3
    PURPLE = 4
    BLUE = 5
    SILVER = 6
    GOLD = 7
    RAINBOW = 8


class PopnClasses(IntEnum):
    KITTY = 0
    GRADE_SCHOOL = 1
    DELINQUENT = 2
    DETECTIVE = 3
    IDOL = 4
    GENERAL = 5
    HERMIT = 6
    GOD = 7


class ChunithmColours(IntEnum):
    BLUE = 0
    GREEN = 1
    ORANGE = 2
    RED = 3
    PURPLE = 4
    BRONZE = 5
    SILVER = 6
    GOLD = 7
    PLATINUM = 8
    RAINBOW = 9


class JubeatColours(IntEnum):
    BLACK = 0
    YELLOW_GREEN = 1
    GREEN = 2
    LIGHT_BLUE = 3
    BLUE = 4
    VIOLET = 5
    PURPLE = 6
    PINK = 7
    ORANGE = 8
    GOLD = 9


class MaimaiDXColours(IntEnum):
    WHITE = 0
    BLUE = 1
    GREEN = 2
    YELLOW = 3
    RED = 4
    PURPLE = 5
    BRONZE = 6
    SILVER = 7
    GOLD = 8
    PLATINUM = 9
    RAINBOW = 10


CLASS_VALUE_SETS: dict[str, type[IntEnum]] = {
    "IIDXDans": IIDXDans,
    "SDVXVFClasses": SDVXVFClasses,
    "GitadoraColours": GitadoraColours,
    "WACCAColours": WACCAColours,
    "PopnClasses": PopnClasses,
    "ChunithmColours": ChunithmColours,
    "JubeatColours": JubeatColours,
    "MaimaiDXColours": MaimaiDXColours,
}


__all__ = [
    "CLASS_VALUE_SETS",
    "ChunithmColours",
    "GitadoraColours",
    "IIDXDans",
    "JubeatColours",
    "MaimaiDXColours",
    "PopnClasses",
    "SDVXVFClasses",
    "WACCAColours",
]
