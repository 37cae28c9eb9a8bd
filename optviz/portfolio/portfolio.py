from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Iterator, List, Optional

from optviz.models.option_record import OptionKind, OptionRecord


class OptionStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"


def option_status(record: OptionRecord, today: date) -> OptionStatus:
    """Active while the expiry is still ahead of ``today``."""
    return OptionStatus.ACTIVE if record.expiry_date > today else OptionStatus.EXPIRED


@dataclass(frozen=True)
class PortfolioSummary:
    total: int
    total_size: float
    calls: int
    puts: int

    @property
    def total_size_millions(self) -> str:
        return f"{self.total_size / 1_000_000:.1f}M"


@dataclass
class Portfolio:
    """Ordered in-memory option list held by the UI layer."""
    records: List[OptionRecord] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[OptionRecord]:
        return iter(self.records)

    def get(self, record_id: int) -> Optional[OptionRecord]:
        for record in self.records:
            if record.id == record_id:
                return record
        return None

    def add(self, record: OptionRecord):
        if self.get(record.id) is not None:
            raise ValueError(f"Duplicate option id: {record.id}")
        self.records.append(record)

    def remove(self, record_id: int) -> bool:
        before = len(self.records)
        self.records = [r for r in self.records if r.id != record_id]
        return len(self.records) != before

    def clear(self) -> int:
        removed = len(self.records)
        self.records = []
        return removed

    def replace(self, records: List[OptionRecord]):
        self.records = list(records)

    def max_id(self) -> int:
        return max((r.id for r in self.records), default=0)

    def summary(self) -> PortfolioSummary:
        calls = sum(1 for r in self.records if r.kind == OptionKind.CALL)
        return PortfolioSummary(
            total=len(self.records),
            total_size=sum(r.size for r in self.records),
            calls=calls,
            puts=len(self.records) - calls,
        )
