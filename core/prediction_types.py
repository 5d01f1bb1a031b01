"""
Prediction type catalog.

Each type maps the two most recent operands to a base position. The catalog
is static; callers choose an active subset by id.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PredictionTypeDefinition:
    id: str
    label: str
    display_label: str
    calculate_base: Callable[[int, int], int]
    color_class: Optional[str] = None
    text_color: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "id": self.id,
            "label": self.label,
            "display_label": self.display_label,
            "color_class": self.color_class,
            "text_color": self.text_color,
        }


ALL_PREDICTION_TYPES: List[PredictionTypeDefinition] = [
    PredictionTypeDefinition(
        "diffMinus", "Minus", "Minus Group",
        lambda a, b: abs(b - a) - 1, "bg-amber-500",
    ),
    PredictionTypeDefinition(
        "diffResult", "Result", "Result Group",
        lambda a, b: abs(b - a), "bg-blue-500", "#2563eb",
    ),
    PredictionTypeDefinition(
        "diffPlus", "Plus", "Plus Group",
        lambda a, b: abs(b - a) + 1, "bg-red-500", "#dc2626",
    ),
    PredictionTypeDefinition(
        "sumMinus", "Sum (-1)", "+ and -1",
        lambda a, b: (a + b) - 1, "bg-sumMinus", "#8b5cf6",
    ),
    PredictionTypeDefinition(
        "sumResult", "Sum Result", "+",
        lambda a, b: a + b, "bg-sumResult", "#10b981",
    ),
    PredictionTypeDefinition(
        "sumPlus", "Sum (+1)", "+ and +1",
        lambda a, b: (a + b) + 1, "bg-sumPlus", "#f43f5e",
    ),
]

PREDICTION_TYPE_CATALOG: Dict[str, PredictionTypeDefinition] = {t.id: t for t in ALL_PREDICTION_TYPES}

DEFAULT_ACTIVE_TYPE_IDS: List[str] = [t.id for t in ALL_PREDICTION_TYPES]


def resolve_active_types(
    active_type_ids: Iterable[str],
    catalog: Optional[Dict[str, PredictionTypeDefinition]] = None,
) -> List[PredictionTypeDefinition]:
    """
    Look up active ids in the catalog, preserving order.

    Unknown ids are a configuration gap: logged and skipped, never raised.
    """
    catalog = PREDICTION_TYPE_CATALOG if catalog is None else catalog
    resolved: List[PredictionTypeDefinition] = []
    seen = set()
    for type_id in active_type_ids:
        if type_id in seen:
            continue
        seen.add(type_id)
        type_def = catalog.get(type_id)
        if type_def is None:
            logger.warning(f"Unknown prediction type '{type_id}' - skipped")
            continue
        resolved.append(type_def)
    return resolved
