"""Plan generation prompt templates.

One user prompt per plan period. Profile text has already been sanitized by
the caller; it is wrapped in <customer_profile> tags so the model treats it
as data.
"""

from app.services.plan_catalog import PlanDefinition

PLAN_SYSTEM_PROMPT = "You are a fitness & nutrition expert."

_PLAN_USER_TEMPLATE = """You are a professional fitness and nutrition expert creating personalised PDF workout and meal plans for paying clients.

A customer purchased the **{plan_name}** plan. Profile:

<customer_profile>
{profile}
</customer_profile>

Allergies / intolerances: **{allergies}** (avoid silently)

Generate {period} with the following structure
{requirements}

FORMAT (plain text, no bullets / tables):

Day [X]:
{format_block}

RULES:
- Every day unique
{rules}- Friendly expert tone
"""

_WORKOUT_FORMAT = """Workout:
- Exercise – sets x reps • intensity or load • form tip"""

_MEAL_FORMAT = """Meal:
- Breakfast: Name + ingredients + Calories / P/C/F
…etc…"""

_MACRO_RULE = "- Show kcal, protein, carbs, fat for each meal\n"


def build_plan_prompts(
    plan: PlanDefinition,
    *,
    profile: str,
    allergies: str,
) -> list[str]:
    """Build the user prompts for a plan, one per period, in order.

    Args:
        plan: Catalog entry of the purchased plan.
        profile: Sanitized "label: value" profile description.
        allergies: Sanitized allergy notes ("None" if not given).

    Returns:
        List of user prompts (two for multi-period plans, else one).
    """
    has_workout = any("workout" in r.lower() for r in plan.requirements)
    has_meals = any("meal" in r.lower() for r in plan.requirements)

    format_parts = []
    if has_workout:
        format_parts.append(_WORKOUT_FORMAT)
    if has_meals:
        format_parts.append(_MEAL_FORMAT)

    requirements = "\n".join(f"- {r}" for r in plan.requirements)

    return [
        _PLAN_USER_TEMPLATE.format(
            plan_name=plan.display_name,
            profile=profile,
            allergies=allergies or "None",
            period=period,
            requirements=requirements,
            format_block="\n".join(format_parts),
            rules=_MACRO_RULE if has_meals else "",
        )
        for period in plan.periods
    ]
