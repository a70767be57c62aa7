"""Map profile ratings onto class values for games whose classes come from ratings."""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping

from domain.classes.values import (
    ChunithmColours,
    GitadoraColours,
    JubeatColours,
    MaimaiDXColours,
    PopnClasses,
    SDVXVFClasses,
    WACCAColours,
)
from domain.ratings.bands import first_band

logger = logging.getLogger(__name__)

ClassDeriver = Callable[[Mapping[str, float | None]], dict[str, int]]

GITADORA_COLOUR_BANDS = (
    (8500, GitadoraColours.RAINBOW),
    (8000, GitadoraColours.GOLD),
    (7500, GitadoraColours.SILVER),
    (7000, GitadoraColours.BRONZE),
    (6500, GitadoraColours.RED_GRADIENT),
    (6000, GitadoraColours.RED),
    (5500, GitadoraColours.PURPLE_GRADIENT),
    (5000, GitadoraColours.PURPLE),
    (4500, GitadoraColours.BLUE_GRADIENT),
    (4000, GitadoraColours.BLUE),
    (3500, GitadoraColours.GREEN_GRADIENT),
    (3000, GitadoraColours.GREEN),
    (2500, GitadoraColours.YELLOW_GRADIENT),
    (2000, GitadoraColours.YELLOW),
    (1500, GitadoraColours.ORANGE_GRADIENT),
    (1000, GitadoraColours.ORANGE),
)

WACCA_COLOUR_BANDS = (
    (2500, WACCAColours.RAINBOW),
    (2200, WACCAColours.GOLD),
    (1900, WACCAColours.SILVER),
    (1600, WACCAColours.BLUE),
    (1300, WACCAColours.PURPLE),
    (1000, WACCAColours.RED),
    (600, WACCAColours.YELLOW),
    (300, WACCAColours.NAVY),
)

POPN_CLASS_BANDS = (
    (91, PopnClasses.GOD),
    (79, PopnClasses.HERMIT),
    (68, PopnClasses.GENERAL),
    (59, PopnClasses.IDOL),
    (46, PopnClasses.DETECTIVE),
    (34, PopnClasses.DELINQUENT),
    (21, PopnClasses.GRADE_SCHOOL),
)

CHUNITHM_COLOUR_BANDS = (
    (15, ChunithmColours.RAINBOW),
    (14.5, ChunithmColours.PLATINUM),
    (14, ChunithmColours.GOLD),
    (13, ChunithmColours.SILVER),
    (12, ChunithmColours.BRONZE),
    (10, ChunithmColours.PURPLE),
    (7, ChunithmColours.RED),
    (4, ChunithmColours.ORANGE),
    (2, ChunithmColours.GREEN),
)

JUBEAT_COLOUR_BANDS = (
    (9500, JubeatColours.GOLD),
    (8500, JubeatColours.ORANGE),
    (7000, JubeatColours.PINK),
    (5500, JubeatColours.PURPLE),
    (4000, JubeatColours.VIOLET),
    (2500, JubeatColours.BLUE),
    (1500, JubeatColours.LIGHT_BLUE),
    (750, JubeatColours.GREEN),
    (250, JubeatColours.YELLOW_GREEN),
)

MAIMAIDX_COLOUR_BANDS = (
    (15000, MaimaiDXColours.RAINBOW),
    (14500, MaimaiDXColours.PLATINUM),
    (14000, MaimaiDXColours.GOLD),
    (13000, MaimaiDXColours.SILVER),
    (12000, MaimaiDXColours.BRONZE),
    (10000, MaimaiDXColours.PURPLE),
    (7000, MaimaiDXColours.RED),
    (4000, MaimaiDXColours.YELLOW),
    (2000, MaimaiDXColours.GREEN),
    (1000, MaimaiDXColours.BLUE),
)


def sdvx_vf6_to_class(vf6: float) -> SDVXVFClasses:
    if vf6 >= 24:
        logger.warning("User has excessive VF6 of %s. Defaulting to Imperial IV.", vf6)
        return SDVXVFClasses.IMPERIAL_IV
    if vf6 >= 20:
        return SDVXVFClasses(SDVXVFClasses.IMPERIAL_I + math.floor(vf6 - 20))
    if vf6 >= 14:
        return SDVXVFClasses(SDVXVFClasses.CYAN_I + math.floor(4 * (vf6 - 14)))
    if vf6 >= 10:
        return SDVXVFClasses(SDVXVFClasses.COBALT_I + math.floor(2 * (vf6 - 10)))
    return SDVXVFClasses(math.floor(vf6 / 2.5))


def gitadora_skill_to_colour(skill: float) -> GitadoraColours:
    return first_band(skill, GITADORA_COLOUR_BANDS, GitadoraColours.WHITE)


def wacca_rate_to_colour(rate: float) -> WACCAColours:
    return first_band(rate, WACCA_COLOUR_BANDS, WACCAColours.ASH)


def popn_points_to_class(points: float) -> PopnClasses:
    return first_band(points, POPN_CLASS_BANDS, PopnClasses.KITTY)


def chunithm_rating_to_colour(rating: float) -> ChunithmColours:
    return first_band(rating, CHUNITHM_COLOUR_BANDS, ChunithmColours.BLUE)


def jubeat_jubility_to_colour(jubility: float) -> JubeatColours:
    return first_band(jubility, JUBEAT_COLOUR_BANDS, JubeatColours.BLACK)


def maimaidx_rate_to_colour(rate: float) -> MaimaiDXColours:
    return first_band(rate, MAIMAIDX_COLOUR_BANDS, MaimaiDXColours.WHITE)


def _from_rating(rating_name: str, class_set: str, convert: Callable[[float], int]) -> ClassDeriver:
    def derive(ratings: Mapping[str, float | None]) -> dict[str, int]:
        rating = ratings.get(rating_name)
        if rating is None:
            return {}
        return {class_set: int(convert(rating))}

    return derive


# game -> deriver; games missing here only get classes from imports
CLASS_DERIVERS: dict[str, ClassDeriver] = {
    "sdvx": _from_rating("VF6", "vfClass", sdvx_vf6_to_class),
    "gitadora": _from_rating("skill", "colour", gitadora_skill_to_colour),
    "wacca": _from_rating("rate", "colour", wacca_rate_to_colour),
    "popn": _from_rating("naiveClassPoints", "class", popn_points_to_class),
    "chunithm": _from_rating("naiveRating", "colour", chunithm_rating_to_colour),
    "jubeat": _from_rating("jubility", "colour", jubeat_jubility_to_colour),
    "maimaidx": _from_rating("rate", "colour", maimaidx_rate_to_colour),
}


def derive_classes(game: str, ratings: Mapping[str, float | None]) -> dict[str, int]:
    """Class values implied by a user's profile ratings (empty when nothing can be derived)."""
    deriver = CLASS_DERIVERS.get(game)
    if deriver is None:
        return {}
    return deriver(ratings)


__all__ = [
    "CLASS_DERIVERS",
    "chunithm_rating_to_colour",
    "derive_classes",
    "gitadora_skill_to_colour",
    "jubeat_jubility_to_colour",
    "maimaidx_rate_to_colour",
    "popn_points_to_class",
    "sdvx_vf6_to_class",
    "wacca_rate_to_colour",
]
