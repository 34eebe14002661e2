"""ePack Export — Serial Rules Table"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from epack_export.config import RulesDisplay


class RulesTable(BaseModel):
    """
    Community-maintained serial denominator table.

    Mirrors the published rules.json shape:
        {"version": "...", "display": "unknownNumerator", "rules": {"<set>|<rarity>": "149"}}
    """
    version: str = ""
    display: RulesDisplay = RulesDisplay.UNKNOWN_NUMERATOR
    rules: dict[str, str] = Field(default_factory=dict)

    @field_validator("version", mode="before")
    @classmethod
    def _coerce_version(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("display", mode="before")
    @classmethod
    def _coerce_display(cls, value: Any) -> RulesDisplay:
        # Anything other than "denomOnly" renders with an unknown numerator
        if value == RulesDisplay.DENOM_ONLY.value:
            return RulesDisplay.DENOM_ONLY
        return RulesDisplay.UNKNOWN_NUMERATOR

    @field_validator("rules", mode="before")
    @classmethod
    def _coerce_rules(cls, value: Any) -> dict[str, str]:
        if not isinstance(value, dict):
            raise ValueError("rules must be a mapping of '<set>|<rarity>' to denominator")
        return {str(k): str(v).strip() for k, v in value.items() if v is not None}


# Seed examples; the community extends these in the published rules.json
DEFAULT_RULES = RulesTable(
    version="fallback",
    display=RulesDisplay.UNKNOWN_NUMERATOR,
    rules={
        "2024-25 SP Game Used Hockey|Gold": "149",
        "2024-25 SP Game Used Hockey|Blue": "99",
        "2024-25 SP Game Used Hockey|Green": "25",
        "2024-25 SP Game Used Hockey|Purple": "10",
        "2024-25 SP Game Used Hockey|Black": "1",
    },
)

__all__ = ["DEFAULT_RULES", "RulesTable"]
