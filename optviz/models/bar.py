from __future__ import annotations
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict

@dataclass(frozen=True)
class PriceBar:
    time: date
    open: float
    high: float
    low: float
    close: float
    volume: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time": self.time.isoformat(),
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PriceBar":
        return cls(
            time=date.fromisoformat(str(data["time"])[:10]),
            open=float(data["open"]),
            high=float(data["high"]),
            low=float(data["low"]),
            close=float(data["close"]),
            volume=float(data.get("volume", 0.0)),
        )
