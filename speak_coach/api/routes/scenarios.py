"""Public scenario catalog for the practice picker."""

from fastapi import APIRouter

from speak_coach.core.scenarios import SCENARIO_CATEGORIES, get_scenarios_by_category

router = APIRouter()


@router.get("/api/scenarios")
def list_scenarios():
    """Categories with their scenarios, in catalog order."""
    grouped = get_scenarios_by_category()
    return {
        "success": True,
        "data": [
            {
                "id": category.id,
                "label": category.label,
                "emoji": category.emoji,
                "color": category.color,
                "scenarios": [s.to_option() for s in grouped[category.id]],
            }
            for category in SCENARIO_CATEGORIES.values()
        ],
    }
