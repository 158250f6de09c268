"""Domain models for daily nutrition progress."""

from dataclasses import dataclass, fields

_MESSAGES = (
    (0.2, "Start your day with purpose! Every step counts on your journey to better health."),
    (
        0.4,
        "You're making great progress! Keep moving forward and remember that"
        " consistency leads to results.",
    ),
    (
        0.6,
        "You're halfway there! Your dedication is truly inspiring."
        " Push through these next steps.",
    ),
    (0.8, "You're almost there! Keep up the great work and stay motivated."),
    (1.0, "So close to the finish line! Perseverance is the key to success."),
)
_GOAL_REACHED = "Congratulations on achieving your goal today! Celebrate this win!"


@dataclass(frozen=True)
class NutrientTotals:
    """Food-group servings for a day, either consumed or targeted."""

    vegetables: float = 0.0
    fruits: float = 0.0
    grains: float = 0.0
    meat: float = 0.0
    dairy: float = 0.0
    extras: float = 0.0

    @classmethod
    def from_payload(cls, payload: dict[str, object]) -> "NutrientTotals":
        """Build totals from a flat JSON map, treating bad values as zero."""
        values: dict[str, float] = {}
        for item in fields(cls):
            raw = payload.get(item.name)
            if isinstance(raw, bool):
                values[item.name] = 0.0
            elif isinstance(raw, int | float):
                values[item.name] = float(raw)
            elif isinstance(raw, str):
                try:
                    values[item.name] = float(raw)
                except ValueError:
                    values[item.name] = 0.0
            else:
                values[item.name] = 0.0
        return cls(**values)

    def as_dict(self) -> dict[str, float]:
        """Return the categories as a plain mapping."""
        return {item.name: getattr(self, item.name) for item in fields(self)}


def calculate_total_progress(intake: NutrientTotals, goals: NutrientTotals) -> float:
    """Average the per-category completion, each capped at 1.0.

    Categories without a positive goal are left out of the average.
    """
    ratios = []
    consumed = intake.as_dict()
    for name, goal in goals.as_dict().items():
        if goal <= 0:
            continue
        ratios.append(min(max(consumed[name], 0.0) / goal, 1.0))
    if not ratios:
        return 0.0
    return sum(ratios) / len(ratios)


def motivational_message(progress: float) -> str:
    """Return an encouragement line for a completion ratio."""
    for threshold, message in _MESSAGES:
        if progress < threshold:
            return message
    return _GOAL_REACHED
