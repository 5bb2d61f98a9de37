from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

NOT_AVAILABLE = "Not available"


@dataclass(frozen=True, slots=True)
class ContentItem:
    """Puzzle metadata fetched for one difficulty class."""

    difficulty: str
    link: Optional[str] = None

    @property
    def available(self) -> bool:
        return bool(self.link)

    @property
    def label(self) -> str:
        return self.difficulty.capitalize()


@dataclass(slots=True)
class PuzzleMessage:
    """Structured payload passed to the messaging channel."""

    text: str
    parse_mode: str = "HTML"
    disable_link_preview: bool = True
    pin: bool = True


@dataclass(slots=True)
class DeliveryJob:
    """One message bound for one recipient, consumed once per cycle."""

    chat_id: int
    message: PuzzleMessage


@dataclass(slots=True)
class CycleReport:
    """Outcome of a single fan-out cycle."""

    delivered: int = 0
    failed_chat_ids: List[int] = field(default_factory=list)
    unavailable: List[str] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failed_chat_ids)

    @property
    def ok(self) -> bool:
        return not self.failed_chat_ids

    def summary(self) -> str:
        text = f"delivered={self.delivered} failed={self.failed}"
        if self.unavailable:
            text += f" unavailable={','.join(self.unavailable)}"
        return text
