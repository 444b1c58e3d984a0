"""후원자별 비트 합계. 누적(total)은 저장소에 남고, 라운드 합계(round)는 라운드 시작 시 0."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from bitwheel.overlay.storage import DONORS_KEY, JsonStore


@dataclass
class DonorTotals:
    round_bits: int = 0
    total_bits: int = 0


class DonorLedger:
    def __init__(self, store: JsonStore):
        self.store = store
        self.donors: Dict[str, DonorTotals] = {}

    def load(self) -> None:
        saved = self.store.get(DONORS_KEY) or {}
        if not isinstance(saved, dict):
            return
        for name, total in saved.items():
            if isinstance(total, int) and not isinstance(total, bool) and total >= 0:
                self.donors[str(name)] = DonorTotals(round_bits=0, total_bits=total)

    def save(self) -> None:
        self.store.set(DONORS_KEY, {name: d.total_bits for name, d in self.donors.items()})

    def add(self, name: str, bits: int) -> DonorTotals:
        if bits < 0:
            raise ValueError(f"bits must be >= 0, got {bits}")
        totals = self.donors.setdefault(name, DonorTotals())
        totals.round_bits += bits
        totals.total_bits += bits
        self.save()
        return totals

    def reset_round(self) -> None:
        for totals in self.donors.values():
            totals.round_bits = 0

    def table(self) -> List[dict]:
        """표시용 목록: 라운드 합계 내림차순, 같으면 누적 내림차순"""
        rows = [
            {"name": name, "round_bits": d.round_bits, "total_bits": d.total_bits}
            for name, d in self.donors.items()
            if d.total_bits > 0
        ]
        rows.sort(key=lambda r: (-r["round_bits"], -r["total_bits"]))
        return rows
