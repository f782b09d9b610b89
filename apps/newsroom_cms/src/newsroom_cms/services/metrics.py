"""In-process metrics registry rendered in Prometheus text format."""

from __future__ import annotations

from dataclasses import dataclass, field
from threading import Lock

LabelKey = tuple[tuple[str, str], ...]

COUNTER = "counter"
GAUGE = "gauge"


@dataclass(slots=True)
class _Family:
    kind: str
    samples: dict[LabelKey, float] = field(default_factory=dict)


class MetricsRegistry:
    def __init__(self) -> None:
        self._lock = Lock()
        self._families: dict[str, _Family] = {}

    def inc_counter(
        self, name: str, value: float = 1.0, *, labels: dict[str, str] | None = None
    ) -> None:
        key = _label_key(labels)
        with self._lock:
            family = self._family(name, COUNTER)
            family.samples[key] = family.samples.get(key, 0.0) + value

    def set_gauge(
        self, name: str, value: float, *, labels: dict[str, str] | None = None
    ) -> None:
        key = _label_key(labels)
        with self._lock:
            self._family(name, GAUGE).samples[key] = float(value)

    def value(self, name: str, *, labels: dict[str, str] | None = None) -> float:
        with self._lock:
            family = self._families.get(name)
            if family is None:
                return 0.0
            return family.samples.get(_label_key(labels), 0.0)

    def reset(self) -> None:
        with self._lock:
            self._families.clear()

    def render(self) -> str:
        with self._lock:
            snapshot = {
                name: (family.kind, sorted(family.samples.items()))
                for name, family in self._families.items()
            }

        lines: list[str] = []
        for name in sorted(snapshot):
            kind, samples = snapshot[name]
            lines.append(f"# TYPE {name} {kind}")
            for labels, value in samples:
                lines.append(f"{name}{_format_labels(labels)} {value}")
        return "\n".join(lines) + "\n"

    def _family(self, name: str, kind: str) -> _Family:
        family = self._families.get(name)
        if family is None:
            family = self._families[name] = _Family(kind)
        elif family.kind != kind:
            raise ValueError(f"metric {name} is already registered as a {family.kind}")
        return family


def _label_key(labels: dict[str, str] | None) -> LabelKey:
    if not labels:
        return ()
    return tuple(sorted((str(k), str(v)) for k, v in labels.items()))


def _format_labels(labels: LabelKey) -> str:
    if not labels:
        return ""
    parts = []
    for key, value in labels:
        safe_value = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
        parts.append(f'{key}="{safe_value}"')
    return "{" + ",".join(parts) + "}"


metrics = MetricsRegistry()
