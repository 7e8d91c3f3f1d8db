"""Fortune-cookie quotes for the About page."""

from __future__ import annotations

import random

FORTUNES: tuple[str, ...] = (
    "Conquer your fears or they will conquer you.",
    "Rivers need springs.",
    "Do not fear what you don't know.",
    "You will have a pleasant surprise.",
    "Whenever possible, keep it simple.",
)


def get_fortune(rng: random.Random | None = None) -> str:
    return (rng or random).choice(FORTUNES)
