"""Plan variant enum shared by config, webhooks, and services."""

from enum import Enum


class PlanVariant(str, Enum):
    """Purchasable plan variants.

    The value doubles as the form webhook path segment and the ``plan``
    query parameter on form links.
    """

    ONE_WEEK = "one_week"
    FOUR_WEEK = "four_week"
    WORKOUT_ONLY = "workout_only"
    MEALS_ONLY = "meals_only"
    TRIAL = "trial"


# Plan labels written by the first generation of the token file
LEGACY_PLAN_LABELS: dict[str, PlanVariant] = {
    "1 Week": PlanVariant.ONE_WEEK,
    "4 Week": PlanVariant.FOUR_WEEK,
}
