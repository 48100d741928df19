"""Append-only text sink for bonus and prerequisite explanations."""

from __future__ import annotations


class Tooltip:
    """Accumulates tooltip fragments.

    Lookups accept ``Tooltip | None``; passing None skips the explanation
    work entirely.
    """

    __slots__ = ("_parts",)

    def __init__(self, text: str = "") -> None:
        self._parts: list[str] = [text] if text else []

    def write(self, text: str) -> None:
        if text:
            self._parts.append(text)

    @property
    def is_empty(self) -> bool:
        return not self._parts

    def __str__(self) -> str:
        return "".join(self._parts)

    def __repr__(self) -> str:
        return f"Tooltip({str(self)!r})"


__all__ = ["Tooltip"]
