"""Text and numeric match criteria used by features and prerequisites.

Qualifiers may contain nameable placeholders (``@Weapon@``) that the owning
element fills in from its replacement map before any comparison is made.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from gurps_engine.core.fixed import fixed_str
from gurps_engine.models.enums import NumericCompare, StringCompare


_NAMEABLE = re.compile(r"@([^@]+)@")


def apply_nameables(text: str, replacements: Mapping[str, str] | None) -> str:
    """Substitute ``@key@`` placeholders; unknown keys are left intact."""
    if not replacements or "@" not in text:
        return text

    def substitute(match: re.Match[str]) -> str:
        value = replacements.get(match.group(1))
        return match.group(0) if value is None else value

    return _NAMEABLE.sub(substitute, text)


def extract_nameables(text: str) -> set[str]:
    """Return the placeholder keys referenced by ``text``."""
    return set(_NAMEABLE.findall(text))


def has_tag(tags: Iterable[str], tag: str) -> bool:
    """Case-insensitive tag test; tags may be colon-separated paths."""
    wanted = tag.strip().lower()
    for one in tags:
        for part in one.split(":"):
            if part.strip().lower() == wanted:
                return True
    return False


class StringCriteria(BaseModel):
    """Matches text against a qualifier."""

    model_config = ConfigDict(extra="ignore")

    compare: StringCompare = StringCompare.ANY
    qualifier: str = ""

    def matches(self, replacements: Mapping[str, str] | None, value: str) -> bool:
        """Case-insensitive comparison after placeholder expansion."""
        if self.compare is StringCompare.ANY:
            return True
        qualifier = apply_nameables(self.qualifier, replacements).lower()
        value = value.lower()
        match self.compare:
            case StringCompare.IS:
                return value == qualifier
            case StringCompare.IS_NOT:
                return value != qualifier
            case StringCompare.CONTAINS:
                return qualifier in value
            case StringCompare.DOES_NOT_CONTAIN:
                return qualifier not in value
            case StringCompare.STARTS_WITH:
                return value.startswith(qualifier)
            case StringCompare.DOES_NOT_START_WITH:
                return not value.startswith(qualifier)
            case StringCompare.ENDS_WITH:
                return value.endswith(qualifier)
            case StringCompare.DOES_NOT_END_WITH:
                return not value.endswith(qualifier)
        return False

    def matches_list(self, replacements: Mapping[str, str] | None, *values: str) -> bool:
        """Match a list of values, typically tags.

        An empty list behaves like a single empty string. Negated comparisons
        must hold for every value; positive ones for at least one.
        """
        if self.compare is StringCompare.ANY:
            return True
        if not values:
            return self.matches(replacements, "")
        if self.compare.negated:
            return all(self.matches(replacements, one) for one in values)
        return any(self.matches(replacements, one) for one in values)

    def describe(self) -> str:
        if self.compare is StringCompare.ANY:
            return "anything"
        return f"{self.compare.value.replace('_', ' ')} \"{self.qualifier}\""


class NumericCriteria(BaseModel):
    """Matches a number against a qualifier."""

    model_config = ConfigDict(extra="ignore")

    compare: NumericCompare = NumericCompare.ANY
    qualifier: Decimal = Field(default=Decimal(0))

    def matches(self, value: Decimal) -> bool:
        match self.compare:
            case NumericCompare.ANY:
                return True
            case NumericCompare.IS:
                return value == self.qualifier
            case NumericCompare.IS_NOT:
                return value != self.qualifier
            case NumericCompare.AT_LEAST:
                return value >= self.qualifier
            case NumericCompare.AT_MOST:
                return value <= self.qualifier
        return False

    def describe(self) -> str:
        if self.compare is NumericCompare.ANY:
            return "any value"
        return f"{self.compare.value.replace('_', ' ')} {fixed_str(self.qualifier)}"


def string_is(qualifier: str) -> StringCriteria:
    return StringCriteria(compare=StringCompare.IS, qualifier=qualifier)


__all__ = [
    "StringCriteria",
    "NumericCriteria",
    "apply_nameables",
    "extract_nameables",
    "has_tag",
    "string_is",
]
