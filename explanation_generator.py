"""
Explanation generator - plain-language rationale for the winning candidate.

Pure formatting: nothing here feeds back into scores or signals.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.history_types import HistoryRecord, confirmed_records

RECENT_WINDOW = 10


@dataclass
class Explanation:
    headline: str
    bullets: List[str] = field(default_factory=list)
    confidence: str = "none"
    window_size: int = 0
    top_group: Optional[str] = None
    runner_up_group: Optional[str] = None
    score_gap_percent: float = 0.0
    recent_hits: int = 0
    recent_total: int = 0
    recent_hit_rate: float = 0.0
    current_streak: int = 0
    final_score: float = 0.0
    primary_factor: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "headline": self.headline,
            "bullets": list(self.bullets),
            "confidence": self.confidence,
            "window_size": self.window_size,
            "top_group": self.top_group,
            "runner_up_group": self.runner_up_group,
            "score_gap_percent": round(self.score_gap_percent, 1),
            "recent_performance": {
                "hits": self.recent_hits,
                "total": self.recent_total,
                "hit_rate": round(self.recent_hit_rate, 1),
                "current_streak": self.current_streak,
            },
            "final_score": round(self.final_score, 2),
            "primary_factor": self.primary_factor,
        }


def insufficient_data_explanation() -> Explanation:
    return Explanation(
        headline="Insufficient data for recommendation",
        bullets=["Need more history to generate reliable context"],
    )


def _confidence_label(gap_percent: float, hit_rate: float, total: int) -> str:
    if gap_percent >= 30 and hit_rate >= 50 and total >= 5:
        return "high"
    if gap_percent >= 15 or (hit_rate >= 40 and total >= 3):
        return "medium"
    return "low"


def _context_bullets(context) -> List[str]:
    if context is None or not context.has_context:
        return []
    if context.kind == "number":
        if context.elevated_numbers:
            return [f"[Ref] {len(context.elevated_numbers)} number(s) with extended non-appearance"]
        return []
    dominant = context.dominant_sector
    if dominant is not None and dominant.level != "normal":
        return [f"[Ref] Sector: {dominant.name} {dominant.description}"]
    return []


def generate_explanation(
    ranked_candidates: List,
    best,
    history: List[HistoryRecord],
    window: int = RECENT_WINDOW,
) -> Explanation:
    """
    Build the rationale for the best candidate.

    Args:
        ranked_candidates: Eligible candidates, best first
        best: The winning CandidateScore (or None)
        history: History the recommendation was computed from
        window: Recent confirmed records used for the hit rate

    Returns:
        Explanation
    """
    if best is None or not ranked_candidates:
        return insufficient_data_explanation()

    top = ranked_candidates[0]
    runner_up = ranked_candidates[1] if len(ranked_candidates) > 1 else None
    runner_up_score = runner_up.final_score if runner_up else 0.0
    runner_up_name = runner_up.display_label if runner_up else "None"

    gap = top.final_score - runner_up_score
    if runner_up_score > 0:
        gap_percent = gap / runner_up_score * 100
    else:
        gap_percent = 100.0 if top.final_score > 0 else 0.0

    recent = confirmed_records(history)[-window:] if window > 0 else []
    hits = 0
    total = 0
    for record in recent:
        if best.group_id in record.type_hits:
            total += 1
            if record.type_hits[best.group_id]:
                hits += 1
    hit_rate = hits / total * 100 if total else 0.0

    name = best.display_label
    streak = best.current_streak
    if streak >= 3:
        headline = f"{name} on {streak}-spin streak"
    elif hit_rate >= 60 and total >= 5:
        headline = f"{name} hitting {hit_rate:.0f}% recently"
    elif gap_percent >= 30:
        headline = f"{name} leads by a clear margin"
    else:
        headline = f"{name} leads the field"

    bullets: List[str] = []
    if streak >= 3:
        bullets.append(f"Active streak: {streak} consecutive hits")
    if total >= 3:
        bullets.append(f"Recent: {hits}/{total} ({hit_rate:.0f}%)")
    bullets.append(f"Runner-up: {runner_up_name} ({gap_percent:.0f}% gap)")
    if best.primary_factor is not None:
        points = best.components.get(best.primary_factor, 0.0)
        bullets.append(f"Primary driver: {best.primary_factor.value} (+{points:.1f} pts)")
    bullets.extend(_context_bullets(best.context))

    return Explanation(
        headline=headline,
        bullets=bullets,
        confidence=_confidence_label(gap_percent, hit_rate, total),
        window_size=len(recent),
        top_group=best.display_label,
        runner_up_group=runner_up_name,
        score_gap_percent=gap_percent,
        recent_hits=hits,
        recent_total=total,
        recent_hit_rate=hit_rate,
        current_streak=streak,
        final_score=best.final_score,
        primary_factor=best.primary_factor.value if best.primary_factor else None,
    )
