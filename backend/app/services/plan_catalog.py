"""Plan catalog and order line-item classification.

Each plan variant has title keywords, the periods it is generated in (one
generation request per period), and the content it must contain.

Classification is a total function over line-item titles: it returns exactly
one PlanVariant, or None when no title names a known plan. Ties are broken by
CLASSIFICATION_PRIORITY, so a "Trial – 4 Week Plan" title is a TRIAL and a
"4 Week Workout Only" title is a WORKOUT_ONLY.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass

from app.schemas.plan import PlanVariant


@dataclass(frozen=True)
class PlanDefinition:
    """Static description of one plan variant.

    Attributes:
        variant: The plan variant this entry describes.
        display_name: Human-readable name used in emails and prompts.
        keywords: Lowercase substrings that identify the plan in a title.
        periods: Period label per generation request, in document order.
        requirements: Content the generated text must contain.
        document_title: Title printed on the PDF cover.
    """

    variant: PlanVariant
    display_name: str
    keywords: tuple[str, ...]
    periods: tuple[str, ...]
    requirements: tuple[str, ...]
    document_title: str

    @property
    def is_multi_period(self) -> bool:
        """True when the plan is generated in more than one request."""
        return len(self.periods) > 1


PLAN_CATALOG: dict[PlanVariant, PlanDefinition] = {
    PlanVariant.TRIAL: PlanDefinition(
        variant=PlanVariant.TRIAL,
        display_name="3 Day Trial",
        keywords=("trial", "sample"),
        periods=("3 Days",),
        requirements=(
            "3-day workout plan (Day 1 to Day 3)",
            "3-day meal plan (Breakfast, Lunch, Dinner, Snack)",
        ),
        document_title="TRIAL GYM & MEAL PLAN",
    ),
    PlanVariant.WORKOUT_ONLY: PlanDefinition(
        variant=PlanVariant.WORKOUT_ONLY,
        display_name="Workout Only",
        keywords=("workout only", "workout-only", "training only", "gym only"),
        periods=("1 Week",),
        requirements=("7-day workout plan (Mon-Sun) with warm-up and cool-down",),
        document_title="PERSONAL WORKOUT PLAN",
    ),
    PlanVariant.MEALS_ONLY: PlanDefinition(
        variant=PlanVariant.MEALS_ONLY,
        display_name="Meals Only",
        keywords=(
            "meals only",
            "meal only",
            "meal plan only",
            "meals-only",
            "nutrition only",
        ),
        periods=("1 Week",),
        requirements=(
            "7-day meal plan (Breakfast, Lunch, Dinner, Snack)",
            "Daily calorie and macro totals",
        ),
        document_title="PERSONAL MEAL PLAN",
    ),
    PlanVariant.FOUR_WEEK: PlanDefinition(
        variant=PlanVariant.FOUR_WEEK,
        display_name="4 Week",
        keywords=("4 week", "4-week", "four week", "4 weeks", "four weeks"),
        periods=("Weeks 1 and 2", "Weeks 3 and 4"),
        requirements=(
            "2-week workout plan (7 days/week, Week > Day > Exercises)",
            "2-week meal plan (7 days/week, 4 meals/day + macros)",
        ),
        document_title="PERSONAL GYM & MEAL PLAN",
    ),
    PlanVariant.ONE_WEEK: PlanDefinition(
        variant=PlanVariant.ONE_WEEK,
        display_name="1 Week",
        keywords=("1 week", "1-week", "one week", "7 day", "7-day"),
        periods=("1 Week",),
        requirements=(
            "7-day workout plan (Mon-Sun)",
            "7-day meal plan (Breakfast, Lunch, Dinner, Snack)",
        ),
        document_title="PERSONAL GYM & MEAL PLAN",
    ),
}

# Most specific product first: content-restricted and trial plans carry a
# duration in their titles too.
CLASSIFICATION_PRIORITY: tuple[PlanVariant, ...] = (
    PlanVariant.TRIAL,
    PlanVariant.WORKOUT_ONLY,
    PlanVariant.MEALS_ONLY,
    PlanVariant.FOUR_WEEK,
    PlanVariant.ONE_WEEK,
)

# Keywords match whole words only: "1 week" must not match "11 Week Program".
_KEYWORD_PATTERNS: dict[PlanVariant, re.Pattern[str]] = {
    variant: re.compile(
        "|".join(rf"\b{re.escape(kw)}\b" for kw in plan.keywords)
    )
    for variant, plan in PLAN_CATALOG.items()
}


def get_plan(variant: PlanVariant) -> PlanDefinition:
    """Return the catalog entry for a variant."""
    return PLAN_CATALOG[variant]


def classify_plan_variant(titles: Iterable[str]) -> PlanVariant | None:
    """Classify an order by its line-item titles.

    Args:
        titles: Line-item titles in any case.

    Returns:
        The highest-priority variant whose keyword appears in any title,
        or None when nothing matches.
    """
    normalized = [" ".join(t.lower().split()) for t in titles if t]
    for variant in CLASSIFICATION_PRIORITY:
        pattern = _KEYWORD_PATTERNS[variant]
        if any(pattern.search(title) for title in normalized):
            return variant
    return None
