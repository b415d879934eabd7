"""
Step 5: Advisory
Turns finalized angle ranges into coaching commentary and a warning flag.

Thresholds and text are configuration data (YAML), not code, so they can be
tuned without touching the engine.
"""

import logging
import yaml
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from utils.angle_calculator import AngleCategory
from pipeline.step4_range_tracker import AngleRange

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "advisory_thresholds.yaml"

RULE_MAX_ABOVE = "max_above"
RULE_MIN_BELOW = "min_below"


@dataclass(frozen=True)
class AdvisoryResult:
    """Coaching feedback for one angle category."""
    comment: str
    recommendations: List[str] = field(default_factory=list)
    show_warning: bool = False


@dataclass
class AdvisoryRule:
    when: str
    message: str
    limit: Optional[float] = None


@dataclass
class CategoryAdvice:
    """Thresholds and text for one category."""
    comment: str
    recommended_range: Tuple[float, float]
    rules: List[AdvisoryRule] = field(default_factory=list)
    caller_range: bool = False


def _side_of(category: AngleCategory) -> str:
    if category.value.startswith('left_'):
        return 'left'
    if category.value.startswith('right_'):
        return 'right'
    return ''


def _fmt(value: float) -> str:
    return f"{value:g}"


class AdvisoryEngine:
    """
    Table-driven advisory lookup.

    Each rule is checked independently, so several recommendations can be
    returned for the same range. `show_warning` is set whenever at least one
    recommendation applies.
    """

    def __init__(self, thresholds: Optional[Mapping[str, Any]] = None):
        """
        Args:
            thresholds: Parsed advisory configuration. Loaded from the bundled
                YAML file when omitted.
        """
        if thresholds is None:
            thresholds = self.load_thresholds(DEFAULT_CONFIG_PATH)

        self.fallback_comment = thresholds.get('fallback_comment', "No specific comment available.")
        self.no_data_comment = thresholds.get('no_data_comment', "No data available.")
        self.table: Dict[AngleCategory, CategoryAdvice] = {}
        self._parse(thresholds.get('advisories', {}))

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "AdvisoryEngine":
        return cls(cls.load_thresholds(path))

    @staticmethod
    def load_thresholds(path: Union[str, Path]) -> Dict[str, Any]:
        """Load advisory configuration from a YAML file."""
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
        logger.debug("Loaded advisory thresholds from %s", path)
        return data

    def _parse(self, advisories: Mapping[str, Any]) -> None:
        for group_name, group in advisories.items():
            low, high = group.get('recommended_range', (0.0, 180.0))
            rules = []
            for rule in group.get('rules', []):
                when = rule.get('when')
                if when not in (RULE_MAX_ABOVE, RULE_MIN_BELOW):
                    raise ValueError(f"Unknown advisory rule '{when}' in group '{group_name}'")
                limit = rule.get('limit')
                rules.append(AdvisoryRule(
                    when=when,
                    message=rule.get('message', ''),
                    limit=float(limit) if limit is not None else None
                ))

            for name in group.get('categories', []):
                category = AngleCategory.parse(name)
                if category is None:
                    raise ValueError(f"Unknown angle category '{name}' in group '{group_name}'")
                self.table[category] = CategoryAdvice(
                    comment=group.get('comment', ''),
                    recommended_range=(float(low), float(high)),
                    rules=rules,
                    caller_range=bool(group.get('caller_range', False))
                )

    def recommended_range(self, category) -> Optional[Tuple[float, float]]:
        """Configured recommended range for a category (for presentation)."""
        category = AngleCategory.parse(category)
        advice = self.table.get(category) if category else None
        return advice.recommended_range if advice else None

    def advise(
        self,
        category,
        min_angle: float,
        max_angle: float,
        recommended_range: Optional[Tuple[float, float]] = None
    ) -> AdvisoryResult:
        """
        Evaluate a finalized range.

        Args:
            category: AngleCategory or any name AngleCategory.parse accepts
            min_angle: Smallest angle observed
            max_angle: Largest angle observed
            recommended_range: (min, max) used by categories that take their
                bounds from the caller (head tilt); ignored by the others

        Returns:
            AdvisoryResult
        """
        resolved = AngleCategory.parse(category)
        advice = self.table.get(resolved) if resolved else None
        if advice is None:
            return AdvisoryResult(comment=self.fallback_comment)

        low, high = advice.recommended_range
        if advice.caller_range and recommended_range is not None:
            low, high = recommended_range

        side = _side_of(resolved)
        recommendations = []
        for rule in advice.rules:
            if rule.when == RULE_MAX_ABOVE:
                limit = rule.limit if rule.limit is not None and not advice.caller_range else high
                triggered = max_angle > limit
            else:
                limit = rule.limit if rule.limit is not None and not advice.caller_range else low
                triggered = min_angle < limit
            if triggered:
                recommendations.append(rule.message.format(
                    side=side, limit=_fmt(limit), min=_fmt(min_angle), max=_fmt(max_angle)
                ))

        comment = advice.comment.format(
            side=side, limit='', min=_fmt(min_angle), max=_fmt(max_angle)
        )
        return AdvisoryResult(
            comment=comment,
            recommendations=recommendations,
            show_warning=bool(recommendations)
        )

    def advise_range(
        self,
        category,
        angle_range: Optional[AngleRange],
        recommended_range: Optional[Tuple[float, float]] = None
    ) -> AdvisoryResult:
        """Like advise(), but accepts a tracker range; None means no data."""
        if angle_range is None:
            if AngleCategory.parse(category) not in self.table:
                return AdvisoryResult(comment=self.fallback_comment)
            return AdvisoryResult(comment=self.no_data_comment)
        return self.advise(category, angle_range.min, angle_range.max, recommended_range)
