"""
가상 시계로 라운드를 빠르게 돌려 보는 시뮬레이션 (네트워크/브라우저 없음)

실행: python examples/simulate_rounds.py [라운드 수] [라운드당 비트]
- 매 라운드 한 명이 비트를 후원했다고 보고, 라운드가 끝날 때까지 진행
- DROP 비율, timeout/drop 종료 비율을 출력 (standard 구성에서 DROP 은 1/40)
"""

import random
import sys
from collections import Counter
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from bitwheel.config import OverlaySettings
from bitwheel.events import SpinRequest
from bitwheel.overlay import ManualScheduler, OverlayEngine
from bitwheel.overlay.storage import JsonStore


def main():
    rounds = int(sys.argv[1]) if len(sys.argv) > 1 else 200
    bits = int(sys.argv[2]) if len(sys.argv) > 2 else 1000

    scheduler = ManualScheduler()
    results: Counter = Counter()
    endings: Counter = Counter()
    engine = OverlayEngine(
        scheduler,
        OverlaySettings(),
        store=JsonStore(None),
        rng=random.Random(7),
        on_spin_complete=lambda label: results.update([label]),
    )
    show_result = engine.rounds.on_result

    def on_result(reason):
        endings[reason.value] += 1
        show_result(reason)

    engine.rounds.on_result = on_result

    for i in range(rounds):
        engine.queue.clear()
        engine.handle_new_spin(SpinRequest.from_bits(f"viewer{i}", bits))
        scheduler.run_until_idle()

    total = sum(results.values())
    print(f"회전 {total}회, 라운드 {rounds}회 ({bits} bits/라운드)")
    for label, count in results.most_common():
        print(f"  {label:12s} {count:6d}  ({count / total:.2%})")
    print(f"라운드 종료: {dict(endings)}")


if __name__ == "__main__":
    main()
