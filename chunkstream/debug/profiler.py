from __future__ import annotations

import json
import math
import time
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator


@dataclass
class _FrameState:
    kind: str
    start_time: float
    context: dict[str, Any] = field(default_factory=dict)
    section_totals_ms: dict[str, float] = field(default_factory=dict)


class RuntimeProfiler:
    """Times streaming frames and the named sections inside them.

    A frame is one boundary crossing of the observer; sections are the
    eviction and fill passes run while reconciling it.
    """

    def __init__(self, enabled: bool = True, slow_frame_ms: float = 4.0, max_slow_frames: int = 200) -> None:
        if max_slow_frames < 1:
            raise ValueError("max_slow_frames must be at least 1")
        self.enabled = enabled
        self.slow_frame_ms = slow_frame_ms
        self.max_slow_frames = max_slow_frames
        self.section_samples_ms: dict[str, list[float]] = defaultdict(list)
        self.frame_samples_ms: dict[str, list[float]] = defaultdict(list)
        self.slow_frames: list[dict[str, Any]] = []
        self._active_frame: _FrameState | None = None

    def begin_frame(self, kind: str, context: dict[str, Any] | None = None) -> None:
        if not self.enabled:
            return
        if self._active_frame is not None:
            self.end_frame({"warning": "frame_auto_closed"})
        self._active_frame = _FrameState(kind=kind, start_time=time.perf_counter(), context=dict(context or {}))

    def end_frame(self, extra_context: dict[str, Any] | None = None) -> None:
        if not self.enabled or self._active_frame is None:
            return
        frame, self._active_frame = self._active_frame, None

        total_ms = (time.perf_counter() - frame.start_time) * 1000.0
        self.frame_samples_ms[frame.kind].append(total_ms)
        if total_ms < self.slow_frame_ms:
            return

        context = {**frame.context, **(extra_context or {})}
        self.slow_frames.append({"kind": frame.kind, "total_ms": total_ms, "context": context, "sections_ms": frame.section_totals_ms})
        del self.slow_frames[: -self.max_slow_frames]

    @contextmanager
    def section(self, name: str) -> Iterator[None]:
        if not self.enabled:
            yield
            return
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record_section_ms(name, (time.perf_counter() - start) * 1000.0)

    def record_section_ms(self, name: str, duration_ms: float) -> None:
        if not self.enabled:
            return
        self.section_samples_ms[name].append(duration_ms)
        if self._active_frame is not None:
            totals = self._active_frame.section_totals_ms
            totals[name] = totals.get(name, 0.0) + duration_ms

    @staticmethod
    def _percentile(values: list[float], p: float) -> float:
        if not values:
            return 0.0
        ordered = sorted(values)
        rank = max(0, min(len(ordered) - 1, int(math.ceil(len(ordered) * p)) - 1))
        return ordered[rank]

    def _stats(self, values: list[float]) -> dict[str, float]:
        if not values:
            return {"count": 0.0, "avg_ms": 0.0, "p95_ms": 0.0, "max_ms": 0.0}
        return {
            "count": float(len(values)),
            "avg_ms": sum(values) / len(values),
            "p95_ms": self._percentile(values, 0.95),
            "max_ms": max(values),
        }

    def summary(self) -> dict[str, Any]:
        return {
            "slow_frame_threshold_ms": self.slow_frame_ms,
            "frame_stats_ms": {name: self._stats(samples) for name, samples in self.frame_samples_ms.items()},
            "section_stats_ms": {name: self._stats(samples) for name, samples in self.section_samples_ms.items()},
            "slow_frames": list(self.slow_frames),
        }

    def write_report(self, output_dir: str | Path = "profiling") -> Path | None:
        if not self.enabled:
            return None
        out_dir = Path(output_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        report = {"generated_at": time.strftime("%Y-%m-%d %H:%M:%S"), **self.summary()}
        path = out_dir / f"streaming_report_{time.strftime('%Y%m%d_%H%M%S')}.json"
        path.write_text(json.dumps(report, indent=2), encoding="utf-8")
        return path
