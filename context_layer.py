"""
STREAK CONTEXT LAYER v1.0
=========================
Supplementary stress context for a prediction group's hit zone.

Two views of "how long since this last hit", both normalized by a
historical maximum so the engine can damp confidence in unusual tables:
1. Number context - per-position loss streaks (default max 150 spins)
2. Sector context - per-sector loss streaks (colours, dozens, columns,
   low/high, even/odd; default max 25 or 35 spins)

Context is NOT prediction. A long streak raises uncertainty, so the
confidence modifier only ever reduces a score (1.0 down to 0.85).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Protocol, Set, Tuple

from loguru import logger

from core.invariants import MAX_POSITION, MIN_POSITION

# ============================================================
# SEVERITY BANDS
# ============================================================

SEVERITY_THRESHOLDS = {
    "normal": 0.3,
    "mild": 0.5,
    "elevated": 0.7,
    "high": 0.85,
}

# (upper bound exclusive, level, description, confidence modifier)
SEVERITY_BANDS: List[Tuple[float, str, str, float]] = [
    (0.3, "normal", "within typical range", 1.0),
    (0.5, "mild", "slightly extended", 0.98),
    (0.7, "elevated", "moderately extended", 0.95),
    (0.85, "high", "notably extended", 0.90),
    (float("inf"), "extreme", "near historical extreme", 0.85),
]

NUMBER_CONTEXT_DESCRIPTIONS = [
    "Numbers within typical historical range",
    "Minor extensions observed",
    "Moderate streak environment detected",
    "Elevated streak levels in hit zone",
    "Unusual environment (numbers near historical extremes)",
]

SECTOR_CONTEXT_DESCRIPTIONS = [
    "Sectors within typical historical range",
    "Minor sector extensions observed",
    "Moderate sector stress detected",
    "Elevated sector stress levels",
    "Unusual sector environment (near historical extremes)",
]

DEFAULT_HISTORICAL_MAX_PER_NUMBER = 150


def _band_index(ratio: float) -> int:
    for index, (upper, _, _, _) in enumerate(SEVERITY_BANDS):
        if ratio < upper:
            return index
    return len(SEVERITY_BANDS) - 1


# ============================================================
# SECTOR DEFINITIONS
# ============================================================

RED_NUMBERS = [1, 3, 5, 7, 9, 12, 14, 16, 18, 19, 21, 23, 25, 27, 30, 32, 34, 36]
BLACK_NUMBERS = [2, 4, 6, 8, 10, 11, 13, 15, 17, 20, 22, 24, 26, 28, 29, 31, 33, 35]

SECTOR_DEFINITIONS: Dict[str, Dict[str, Any]] = {
    "red": {"name": "Red", "numbers": RED_NUMBERS, "max": 25},
    "black": {"name": "Black", "numbers": BLACK_NUMBERS, "max": 25},
    "dozen1": {"name": "1st Dozen (1-12)", "numbers": list(range(1, 13)), "max": 35},
    "dozen2": {"name": "2nd Dozen (13-24)", "numbers": list(range(13, 25)), "max": 35},
    "dozen3": {"name": "3rd Dozen (25-36)", "numbers": list(range(25, 37)), "max": 35},
    "column1": {"name": "1st Column", "numbers": list(range(1, 37, 3)), "max": 35},
    "column2": {"name": "2nd Column", "numbers": list(range(2, 37, 3)), "max": 35},
    "column3": {"name": "3rd Column", "numbers": list(range(3, 37, 3)), "max": 35},
    "low": {"name": "Low (1-18)", "numbers": list(range(1, 19)), "max": 25},
    "high": {"name": "High (19-36)", "numbers": list(range(19, 37)), "max": 25},
    "even": {"name": "Even", "numbers": list(range(2, 37, 2)), "max": 25},
    "odd": {"name": "Odd", "numbers": list(range(1, 37, 2)), "max": 25},
}

# Names used by external loss feeds -> internal sector ids
SECTOR_ALIASES = {
    "Red": "red",
    "Black": "black",
    "1st 12": "dozen1",
    "2nd 12": "dozen2",
    "3rd 12": "dozen3",
    "1st Column": "column1",
    "2nd Column": "column2",
    "3rd Column": "column3",
    "Low": "low",
    "High": "high",
    "Even": "even",
    "Odd": "odd",
    "1-18": "low",
    "19-36": "high",
}


def standardize_sector(name: str) -> str:
    """Convert any sector reference to its internal id."""
    return SECTOR_ALIASES.get(name, str(name).lower())


# ============================================================
# DATA CLASSES
# ============================================================

@dataclass
class SeverityInfo:
    """Normalized loss streak for one number or sector."""
    key: str
    name: str
    current_loss: int
    historical_max: float
    ratio: float
    level: str
    description: str
    is_api_max: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "current_loss": self.current_loss,
            "historical_max": self.historical_max,
            "ratio": round(self.ratio, 4),
            "level": self.level,
            "description": self.description,
            "is_api_max": self.is_api_max,
        }


@dataclass(frozen=True)
class GroupContext:
    """Tagged context result for one hit zone."""
    has_context: bool
    kind: str = "none"
    aggregate_severity: float = 0.0
    description: str = "No context available"
    elevated_numbers: List[int] = field(default_factory=list)
    highest: Optional[SeverityInfo] = None
    dominant_sector: Optional[SeverityInfo] = None
    has_api_data: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "has_context": self.has_context,
            "kind": self.kind,
            "aggregate_severity": round(self.aggregate_severity, 4),
            "description": self.description,
            "elevated_numbers": list(self.elevated_numbers),
            "highest": self.highest.to_dict() if self.highest else None,
            "dominant_sector": self.dominant_sector.to_dict() if self.dominant_sector else None,
            "has_api_data": self.has_api_data,
        }


NO_CONTEXT = GroupContext(has_context=False)


class ContextProvider(Protocol):
    """Optional capability queried by the recommendation engine."""

    def get_group_number_context(self, hit_zone: List[int]) -> GroupContext:
        ...

    def get_group_sector_context(self, hit_zone: List[int]) -> GroupContext:
        ...

    def get_confidence_modifier(self, context: GroupContext) -> float:
        ...


class SpinFedContextProvider(ContextProvider, Protocol):
    """Context provider refreshed from the chronological spin list during a replay."""

    def update_from_spins(self, spins: Iterable[int]) -> None:
        ...


def confidence_modifier_for(severity: float) -> float:
    """Band modifier for an aggregate severity ratio."""
    return SEVERITY_BANDS[_band_index(severity)][3]


# ============================================================
# STREAK CONTEXT PROVIDER
# ============================================================

class StreakContextProvider:
    """
    Number and sector loss-streak context.

    Fed either from a list of recent spins (oldest first) or from an external
    loss feed carrying current streaks and historical maxima. Until one of
    those arrives every query answers has_context=False.
    """

    def __init__(self):
        self.reset()

    def reset(self):
        self.number_losses: Dict[int, int] = {n: 0 for n in range(MIN_POSITION, MAX_POSITION + 1)}
        self.number_max: Dict[int, float] = {
            n: DEFAULT_HISTORICAL_MAX_PER_NUMBER for n in range(MIN_POSITION, MAX_POSITION + 1)
        }
        self.sector_losses: Dict[str, int] = {sid: 0 for sid in SECTOR_DEFINITIONS}
        self.sector_max: Dict[str, float] = {sid: d["max"] for sid, d in SECTOR_DEFINITIONS.items()}
        self.api_number_max: Set[int] = set()
        self.api_sector_max: Set[str] = set()
        self.data_source = "defaults"
        self.is_initialized = False

    # ---------- feeding ----------

    def update_from_spins(self, spins: Iterable[int]) -> None:
        """Recompute every loss streak from a chronological spin list."""
        recent_first = [s for s in reversed(list(spins)) if MIN_POSITION <= s <= MAX_POSITION]
        if not recent_first:
            return

        for number in self.number_losses:
            self.number_losses[number] = (
                recent_first.index(number) if number in recent_first else len(recent_first)
            )

        for sector_id, definition in SECTOR_DEFINITIONS.items():
            members = set(definition["numbers"])
            streak = 0
            for spin in recent_first:
                if spin in members:
                    break
                streak += 1
            self.sector_losses[sector_id] = streak

        if self.data_source != "api":
            self.data_source = "calculated"
        self.is_initialized = True

    def update_number_losses_from_api(self, data: Optional[Dict[Any, Dict[str, Any]]]) -> bool:
        """Load {number: {current|losses, max}} from an external feed."""
        if not data or not isinstance(data, dict):
            logger.warning("Number loss feed missing or malformed - context unchanged")
            return False

        self.api_number_max.clear()
        for key, entry in data.items():
            try:
                number = int(key)
            except (TypeError, ValueError):
                continue
            if not MIN_POSITION <= number <= MAX_POSITION or not isinstance(entry, dict):
                continue
            self.number_losses[number] = int(entry.get("current") or entry.get("losses") or 0)
            max_value = entry.get("max")
            if max_value is not None and max_value > 0:
                self.number_max[number] = max_value
                self.api_number_max.add(number)

        self.data_source = "api" if self.api_number_max else "calculated"
        self.is_initialized = True
        logger.info(f"Number context updated: source={self.data_source} api_max={len(self.api_number_max)}")
        return True

    def update_sector_losses_from_api(self, data: Any) -> bool:
        """Load sector losses from [{name, losses, max}] or {name: {losses, max}}."""
        if not data:
            logger.warning("Sector loss feed missing - context unchanged")
            return False

        if isinstance(data, list):
            entries = [(item.get("name", ""), item) for item in data if isinstance(item, dict)]
        elif isinstance(data, dict):
            entries = [(name, item) for name, item in data.items() if isinstance(item, dict)]
        else:
            logger.warning(f"Unexpected sector feed format: {type(data).__name__}")
            return False

        self.api_sector_max.clear()
        for name, entry in entries:
            sector_id = standardize_sector(name)
            if sector_id not in SECTOR_DEFINITIONS:
                continue
            self.sector_losses[sector_id] = int(entry.get("losses") or entry.get("current") or 0)
            max_value = entry.get("max")
            if max_value is not None and max_value > 0:
                self.sector_max[sector_id] = max_value
                self.api_sector_max.add(sector_id)

        self.data_source = "api" if self.api_sector_max else "calculated"
        self.is_initialized = True
        logger.info(f"Sector context updated: source={self.data_source} api_max={len(self.api_sector_max)}")
        return True

    # ---------- severity ----------

    @staticmethod
    def _severity(key: str, name: str, current: int, maximum: float, is_api: bool) -> SeverityInfo:
        ratio = current / maximum if maximum > 0 else 0.0
        _, level, description, _ = SEVERITY_BANDS[_band_index(ratio)]
        return SeverityInfo(
            key=key,
            name=name,
            current_loss=current,
            historical_max=maximum,
            ratio=min(ratio, 1.0),
            level=level,
            description=description,
            is_api_max=is_api,
        )

    def number_severity(self, number: int) -> Optional[SeverityInfo]:
        if not MIN_POSITION <= number <= MAX_POSITION:
            return None
        return self._severity(
            str(number),
            str(number),
            self.number_losses.get(number, 0),
            self.number_max.get(number, DEFAULT_HISTORICAL_MAX_PER_NUMBER),
            number in self.api_number_max,
        )

    def sector_severity(self, sector_id: str) -> SeverityInfo:
        return self._severity(
            sector_id,
            SECTOR_DEFINITIONS[sector_id]["name"],
            self.sector_losses.get(sector_id, 0),
            self.sector_max.get(sector_id, SECTOR_DEFINITIONS[sector_id]["max"]),
            sector_id in self.api_sector_max,
        )

    # ---------- ContextProvider ----------

    def get_group_number_context(self, hit_zone: List[int]) -> GroupContext:
        if not self.is_initialized:
            return NO_CONTEXT

        severities = [s for s in (self.number_severity(n) for n in hit_zone) if s is not None]
        if not severities:
            return GroupContext(has_context=False, description="No valid numbers in hit zone")

        average = sum(s.ratio for s in severities) / len(severities)
        highest = severities[0]
        for severity in severities[1:]:
            if severity.ratio > highest.ratio:
                highest = severity

        return GroupContext(
            has_context=True,
            kind="number",
            aggregate_severity=average,
            description=NUMBER_CONTEXT_DESCRIPTIONS[_band_index(average)],
            elevated_numbers=[int(s.key) for s in severities if s.ratio >= SEVERITY_THRESHOLDS["mild"]],
            highest=highest,
            has_api_data=any(s.is_api_max for s in severities),
        )

    def get_group_sector_context(self, hit_zone: List[int]) -> GroupContext:
        """Exposure-weighted sector severity; zero belongs to no sector."""
        if not self.is_initialized:
            return NO_CONTEXT

        numbers = [n for n in hit_zone if 1 <= n <= MAX_POSITION]
        if not numbers:
            return GroupContext(
                has_context=False,
                description="No sector context available (hit zone may only contain 0)",
            )

        total_weight = 0.0
        weighted = 0.0
        dominant: Optional[SeverityInfo] = None
        max_exposure = 0.0
        has_api = False

        for sector_id, definition in SECTOR_DEFINITIONS.items():
            members = set(definition["numbers"])
            exposure = sum(1 for n in numbers if n in members) / len(numbers)
            if exposure == 0:
                continue
            severity = self.sector_severity(sector_id)
            weighted += severity.ratio * exposure
            total_weight += exposure
            has_api = has_api or severity.is_api_max
            if exposure > max_exposure:
                max_exposure = exposure
                dominant = severity

        aggregate = weighted / total_weight if total_weight > 0 else 0.0
        return GroupContext(
            has_context=True,
            kind="sector",
            aggregate_severity=aggregate,
            description=SECTOR_CONTEXT_DESCRIPTIONS[_band_index(aggregate)],
            dominant_sector=dominant,
            has_api_data=has_api,
        )

    def get_confidence_modifier(self, context: GroupContext) -> float:
        if not context.has_context:
            return 1.0
        return confidence_modifier_for(context.aggregate_severity)

    def summary(self) -> Dict[str, Any]:
        return {
            "is_initialized": self.is_initialized,
            "data_source": self.data_source,
            "api_number_max_count": len(self.api_number_max),
            "api_sector_max_count": len(self.api_sector_max),
            "sectors": {sid: self.sector_severity(sid).to_dict() for sid in SECTOR_DEFINITIONS},
        }
