"""Reactions and conditional modifiers gathered per situation."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from gurps_engine.core.fixed import ZERO, with_sign


class ConditionalModifier(BaseModel):
    """Every modifier that applies in one situation, with its sources.

    Attributes:
        situation: The situation text ("from others", "when climbing").
        sources: Where each amount comes from ("from trait Appearance").
        amounts: Amount contributed by each source, parallel to ``sources``.
    """

    model_config = ConfigDict(extra="ignore")

    situation: str
    sources: list[str] = Field(default_factory=list)
    amounts: list[Decimal] = Field(default_factory=list)

    def add(self, source: str, amount: Decimal) -> None:
        self.sources.append(source)
        self.amounts.append(amount)

    @property
    def total(self) -> Decimal:
        return sum(self.amounts, ZERO)

    def tooltip(self) -> str:
        return "\n".join(
            f"{with_sign(amount)} {source}" for source, amount in zip(self.sources, self.amounts, strict=True)
        )


__all__ = ["ConditionalModifier"]
