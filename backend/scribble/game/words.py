from __future__ import annotations

import random
from pathlib import Path


DEFAULT_WORDS = [
    "cat", "dog", "house", "tree", "car", "boat", "sun", "moon", "star",
    "fish", "bird", "flower", "mountain", "beach", "computer", "phone",
    "book", "chair", "table", "door", "window", "pizza", "hamburger",
    "airplane", "train", "bicycle", "robot", "monster", "dragon", "unicorn",
    "rainbow", "cloud", "rain", "snow", "fire", "guitar", "drum", "piano",
    "tiger", "lion", "elephant", "giraffe", "octopus", "dolphin", "shark",
    "king", "queen", "castle", "knight", "wizard", "superhero", "pirate",
]


def load_words(path: str | Path | None) -> list[str]:
    """Read a word list (one word per line, ``#`` comments allowed).

    Falls back to the built-in list when no path is given.
    """
    if not path:
        return list(DEFAULT_WORDS)

    words: list[str] = []
    seen: set[str] = set()
    for line in Path(path).read_text(encoding="utf-8").splitlines():
        w = line.strip()
        if not w or w.startswith("#"):
            continue
        key = w.lower()
        if key in seen:
            continue
        seen.add(key)
        words.append(w)

    if not words:
        raise ValueError(f"word list {path} is empty")
    return words


def pick_words(words: list[str], count: int, rng: random.Random | None = None) -> list[str]:
    """Shuffle a copy of ``words`` and take the first ``count`` (no replacement)."""
    pool = list(words)
    (rng or random).shuffle(pool)
    return pool[: max(0, count)]


def mask_word(word: str) -> str:
    """Hint shown to guessers: letters become underscores, everything else stays."""
    return "".join("_" if ch.isascii() and ch.isalpha() else ch for ch in word)
