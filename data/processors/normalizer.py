"""
Metric Normalizer - maps raw metrics to bounded point contributions
Threshold ladders, score adjustments and the single-pass score summation
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from analysis.models import ComponentScoreResult
from utils.constants import BASE_SCORE, FlagKind, MAX_SCORE, MIN_SCORE
from utils.helpers import clamp, is_missing, round_score


class Direction(Enum):
    """Which side of a band bound a value must fall on"""
    HIGHER_IS_BETTER = "higher"   # bound is a lower bound, checked highest first
    LOWER_IS_BETTER = "lower"     # bound is an upper bound, checked lowest first


@dataclass(frozen=True)
class ThresholdBand:
    """One rung of a ladder; label may reference {value}"""
    bound: float
    delta: float
    label: Optional[str] = None
    kind: FlagKind = FlagKind.FLAG
    inclusive: Optional[bool] = None


@dataclass(frozen=True)
class ScoreAdjustment:
    """A point delta produced by one rule"""
    delta: float
    label: Optional[str] = None
    kind: FlagKind = FlagKind.FLAG
    rule: str = ""


@dataclass(frozen=True)
class ThresholdLadder:
    """
    Ordered threshold rules where the first matching band wins.

    HIGHER_IS_BETTER matches value > bound (>= when inclusive) scanning bounds
    from highest to lowest. LOWER_IS_BETTER matches value < bound (<= when
    inclusive) scanning from lowest to highest. A value that matches no band
    takes the fallback, if any. A missing value produces nothing.
    """
    name: str
    bands: Tuple[ThresholdBand, ...]
    fallback: Optional[ThresholdBand] = None
    direction: Direction = Direction.HIGHER_IS_BETTER
    inclusive: bool = False

    def _ordered(self) -> List[ThresholdBand]:
        reverse = self.direction is Direction.HIGHER_IS_BETTER
        return sorted(self.bands, key=lambda band: band.bound, reverse=reverse)

    def _matches(self, value: float, band: ThresholdBand) -> bool:
        inclusive = self.inclusive if band.inclusive is None else band.inclusive
        if self.direction is Direction.HIGHER_IS_BETTER:
            return value >= band.bound if inclusive else value > band.bound
        return value <= band.bound if inclusive else value < band.bound

    def match(self, value: Optional[float]) -> Optional[ThresholdBand]:
        if is_missing(value):
            return None
        for band in self._ordered():
            if self._matches(value, band):
                return band
        return self.fallback

    def evaluate(self, value: Optional[float], **label_args: Any) -> Optional[ScoreAdjustment]:
        band = self.match(value)
        if band is None:
            return None
        label = band.label.format(value=value, **label_args) if band.label else None
        return ScoreAdjustment(delta=band.delta, label=label, kind=band.kind, rule=self.name)


def ladder(name: str, bands: Sequence[Tuple], fallback: Optional[Tuple] = None,
           direction: Direction = Direction.HIGHER_IS_BETTER,
           inclusive: bool = False) -> ThresholdLadder:
    """Build a ladder from (bound, delta, label[, kind]) tuples"""
    def to_band(entry: Tuple) -> ThresholdBand:
        return ThresholdBand(*entry)

    return ThresholdLadder(
        name=name,
        bands=tuple(to_band(entry) for entry in bands),
        fallback=to_band((0.0,) + tuple(fallback)) if fallback else None,
        direction=direction,
        inclusive=inclusive,
    )


def rule(name: str, condition: bool, delta: float, label: Optional[str] = None,
         kind: FlagKind = FlagKind.FLAG) -> Optional[ScoreAdjustment]:
    """Predicate rule: contributes only when condition holds"""
    if not condition:
        return None
    return ScoreAdjustment(delta=delta, label=label, kind=kind, rule=name)


def note(label: str, kind: FlagKind = FlagKind.FLAG, name: str = "note") -> ScoreAdjustment:
    """Zero-point adjustment carrying only a label"""
    return ScoreAdjustment(delta=0.0, label=label, kind=kind, rule=name)


def collect(adjustments: Iterable[Optional[ScoreAdjustment]]) -> Tuple[ScoreAdjustment, ...]:
    return tuple(adj for adj in adjustments if adj is not None)


def total_delta(adjustments: Iterable[ScoreAdjustment]) -> float:
    return sum(adj.delta for adj in adjustments)


def finalize_score(base: float, adjustments: Iterable[ScoreAdjustment]) -> float:
    """Sum once, clamp to [0, 10], round half away from zero to 2 dp"""
    raw = base + total_delta(adjustments)
    return round_score(clamp(raw, MIN_SCORE, MAX_SCORE))


def build_result(adjustments: Iterable[Optional[ScoreAdjustment]],
                 details: Optional[Mapping[str, Any]] = None,
                 data_quality: str = "unknown",
                 base: float = BASE_SCORE) -> ComponentScoreResult:
    """Turn a rule list into an immutable ComponentScoreResult"""
    applied = collect(adjustments)
    by_kind: Dict[FlagKind, List[str]] = {kind: [] for kind in FlagKind}
    for adj in applied:
        if adj.label:
            by_kind[adj.kind].append(adj.label)

    detail_map = dict(details or {})
    detail_map.setdefault('base_score', base)
    detail_map.setdefault('adjustments', [
        {'rule': adj.rule, 'delta': adj.delta} for adj in applied if adj.delta
    ])

    return ComponentScoreResult(
        score=finalize_score(base, applied),
        details=detail_map,
        flags=tuple(by_kind[FlagKind.FLAG]),
        warnings=tuple(by_kind[FlagKind.WARNING]),
        red_flags=tuple(by_kind[FlagKind.RED_FLAG]),
        data_quality=data_quality,
    )


def neutral_result(data_quality: str, reason: str,
                   details: Optional[Mapping[str, Any]] = None) -> ComponentScoreResult:
    """Neutral score used when a metric family has no usable data"""
    return build_result([note(reason)], details=details, data_quality=data_quality)
