from typing import Iterable, Optional, Union


def normalize_tags(raw: Optional[Union[str, Iterable[str]]]) -> list[str]:
    """
    Normalize tags into a lowercase, de-duplicated list

    Accepts either a comma-separated string ("Go, python,go") or an iterable of
    strings. Blank entries are dropped and first occurrence order is kept.

    :return: the normalized tags, empty if nothing usable was given
    """
    if raw is None:
        return []

    if isinstance(raw, str):
        raw = raw.split(",")

    tags = []
    for tag in raw:
        if not isinstance(tag, str):
            continue
        cleaned = tag.strip().lower()
        if cleaned and cleaned not in tags:
            tags.append(cleaned)
    return tags
