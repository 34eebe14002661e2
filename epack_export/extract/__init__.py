"""ePack Export — Extraction Layer"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel

YES = "Yes"
NO = "No"
PENDING = "Pending"

PhysicalFlag = Literal["Yes", "No", "Pending", ""]
BinaryFlag = Literal["Yes", "No", ""]

CSV_HEADERS: tuple[str, ...] = (
    "Title", "Set", "Subset/Insert", "Card #", "Year", "Rarity/Parallel",
    "Qty", "SubjPoints", "CombineNeeded", "Physical", "Locked", "Wishlist",
    "Serial", "RawText",
)


class GroupHeader(BaseModel):
    """
    Set/subset/year parsed once per group and shared by all its rows.

    `rarity` is inferred from the header text alone; a row falls back to its
    own title only when the header names no rarity.
    """
    header: str = ""
    set_name: str = ""
    subset: str = ""
    year: str = ""
    rarity: str = ""


class CardRecord(BaseModel):
    """One exported inventory row."""
    title: str
    set_name: str = ""
    subset: str = ""
    card_number: str
    year: str = ""
    rarity: str = ""
    quantity_owned: int = 0
    subject_points: int = 0
    combine_needed: int = 0
    physical: PhysicalFlag = NO
    locked: BinaryFlag = NO
    wishlist: BinaryFlag = NO
    serial: str = ""
    raw_text: str = ""

    def as_csv_row(self) -> dict[str, str | int]:
        """Map fields onto the CSV column names, in header order."""
        values = (
            self.title, self.set_name, self.subset, self.card_number, self.year,
            self.rarity, self.quantity_owned, self.subject_points,
            self.combine_needed, self.physical, self.locked, self.wishlist,
            self.serial, self.raw_text,
        )
        return dict(zip(CSV_HEADERS, values))


@dataclass
class RowFields:
    """
    Fields recovered from one row element.

    `row` is the source element itself; its identity is what callers use to
    avoid emitting the same row twice when several anchors lead to it.
    """
    row: Any
    card_number: str = ""
    title: str = ""
    quantity_owned: int = 0
    subject_points: int = 0
    combine_needed: int = 0
    physical: str = NO
    locked: str = NO
    wishlist: str = NO
    serial: str = ""
    raw_text: str = ""

    @property
    def is_complete(self) -> bool:
        return bool(self.card_number and self.title)
