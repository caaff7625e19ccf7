"""
Proximity scoring for color guesses.

A guess earns up to MAX_SCORE points, falling linearly with its Euclidean
distance from the target inside the RGB cube. The opposite corner of the cube
is worth nothing.
"""

import math

from chroma.logic.types import Rgb

MAX_SCORE = 100
MAX_DISTANCE = math.sqrt(3 * 255**2)


def color_distance(a: Rgb, b: Rgb) -> float:
    """Euclidean distance between two colors in RGB space."""
    return math.sqrt((a.r - b.r) ** 2 + (a.g - b.g) ** 2 + (a.b - b.b) ** 2)


def calculate_score(guess: Rgb, target: Rgb) -> int:
    """Score a guess against the round's target color.

    Halves round up (floor(x + 0.5)) rather than to even, so a raw score of
    62.5 is worth 63 like it always was for players.
    """
    raw = max(0.0, MAX_SCORE - MAX_SCORE * color_distance(guess, target) / MAX_DISTANCE)
    return math.floor(raw + 0.5)
