from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from .knowledge import MEDICATION_INTERACTIONS


@dataclass(frozen=True)
class Interaction:
    medication1: str
    medication2: str
    warning: str

    def as_dict(self) -> dict[str, str]:
        return {"medication1": self.medication1, "medication2": self.medication2, "warning": self.warning}


@dataclass
class InteractionReport:
    interactions: list[Interaction] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "interactions": [item.as_dict() for item in self.interactions],
            "warnings": list(self.warnings),
        }


def _format_warning(interaction: Interaction) -> str:
    return (
        f"⚠️ Potential interaction between {interaction.medication1} and {interaction.medication2}: "
        f"{interaction.warning}"
    )


class InteractionChecker:
    def __init__(self, table: dict[str, dict[str, Any]] | None = None, *, symmetric: bool = True) -> None:
        self.table = {
            name.lower(): {
                "interactions": [other.lower() for other in entry.get("interactions", [])],
                "warnings": str(entry.get("warnings", "")),
            }
            for name, entry in (table if table is not None else MEDICATION_INTERACTIONS).items()
        }
        self.symmetric = symmetric

    def _lookup(self, source: str, target: str) -> Interaction | None:
        entry = self.table.get(source)
        if entry and target in entry["interactions"]:
            return Interaction(medication1=source, medication2=target, warning=entry["warnings"])
        return None

    def check(self, medications: Iterable[str]) -> InteractionReport:
        names: list[str] = []
        for raw in medications:
            name = str(raw).strip().lower()
            if name and name not in names:
                names.append(name)

        report = InteractionReport()
        for i, first in enumerate(names):
            for second in names[i + 1 :]:
                interaction = self._lookup(first, second)
                if interaction is None and self.symmetric:
                    interaction = self._lookup(second, first)
                if interaction is None:
                    continue
                report.interactions.append(interaction)
                report.warnings.append(_format_warning(interaction))
        return report
