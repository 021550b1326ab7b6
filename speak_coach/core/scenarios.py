"""
Conversation scenarios for context-specific practice.

A scenario narrows the tutor to one real-life situation. Chat requests
may name a scenario id from this catalog or send a short free-text focus.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class ScenarioCategory:
    id: str
    label: str
    emoji: str
    color: str  # UI accent


@dataclass(frozen=True)
class Scenario:
    """One practice situation and the tutor focus it calls for."""
    id: str
    label: str
    emoji: str
    category: str
    description: str
    instructions: str

    def to_option(self) -> Dict[str, str]:
        """Public fields for scenario pickers (instructions stay server-side)."""
        return {
            "id": self.id,
            "label": self.label,
            "emoji": self.emoji,
            "category": self.category,
            "description": self.description,
        }


SCENARIO_CATEGORIES: Dict[str, ScenarioCategory] = {c.id: c for c in (
    ScenarioCategory("travel", "Travel", "✈️", "sky"),
    ScenarioCategory("business", "Business", "💼", "indigo"),
    ScenarioCategory("daily", "Daily life", "🏪", "emerald"),
    ScenarioCategory("social", "Social", "👥", "rose"),
)}


SCENARIOS: Dict[str, Scenario] = {s.id: s for s in (
    # Travel
    Scenario(
        "airport", "Airport", "✈️", "travel",
        "Check-in, security and boarding",
        "Focus on airport vocabulary and situations: check-in, security screening, boarding, "
        "baggage claim, flight delays. Use common airport phrases and help practice realistic "
        'airport conversations. Include vocabulary like "boarding pass", "gate", "terminal", '
        '"customs", "departure".',
    ),
    Scenario(
        "hotel", "Hotel", "🏨", "travel",
        "Checking in, questions and service requests",
        "Focus on hotel situations: checking in/out, room service, amenities, complaints, requests. "
        "Practice making reservations, asking about facilities, reporting issues. Include vocabulary "
        'like "reservation", "check-in", "room key", "amenities", "housekeeping".',
    ),
    Scenario(
        "tourist", "Sightseeing", "🗺️", "travel",
        "Visiting attractions, asking directions, buying tickets",
        "Focus on tourist activities: asking for directions, buying tickets, visiting attractions, "
        "taking tours. Practice questions about locations, prices, opening hours. Include vocabulary "
        'like "attraction", "landmark", "guided tour", "admission fee", "directions".',
    ),
    # Business
    Scenario(
        "interview", "Job interview", "💼", "business",
        "Self-introduction and answering interview questions",
        "Focus on job interview situations: self-introduction, answering behavioral questions, "
        "discussing experience and skills, asking about the role. Practice professional language "
        'and common interview questions. Include vocabulary like "qualifications", '
        '"responsibilities", "teamwork", "achievement", "career goals".',
    ),
    Scenario(
        "meeting", "Meeting", "📊", "business",
        "Work meetings, giving opinions, discussion",
        "Focus on business meeting situations: presenting ideas, agreeing/disagreeing "
        "professionally, making suggestions, asking for clarification. Practice formal business "
        'communication. Include vocabulary like "agenda", "proposal", "deadline", "strategy", '
        '"follow-up".',
    ),
    Scenario(
        "presentation", "Presentation", "📈", "business",
        "Presenting and handling Q&A",
        "Focus on presentation skills: introducing topics, transitioning between points, "
        "emphasizing key information, handling Q&A. Practice clear, confident delivery. Include "
        'vocabulary like "overview", "highlight", "data shows", "in conclusion", "any questions".',
    ),
    Scenario(
        "networking", "Networking", "🤝", "business",
        "Professional small talk and exchanging contacts",
        "Focus on professional networking: introducing yourself, exchanging business cards, making "
        "small talk, following up. Practice polite, professional conversation starters. Include "
        'vocabulary like "industry", "background", "connect", "opportunity", "collaboration".',
    ),
    # Daily life
    Scenario(
        "restaurant", "Restaurant", "🍽️", "daily",
        "Ordering, menu questions and paying",
        "Focus on restaurant situations: making reservations, ordering food, asking about menu "
        "items, requesting changes, paying the bill. Practice polite requests and food vocabulary. "
        'Include vocabulary like "appetizer", "main course", "allergy", "bill", "tip".',
    ),
    Scenario(
        "shopping", "Shopping", "🛍️", "daily",
        "Buying things, prices, returns and exchanges",
        "Focus on shopping situations: asking about products, trying things on, comparing prices, "
        "returns/exchanges. Practice making purchases and handling issues. Include vocabulary like "
        '"size", "color", "discount", "receipt", "refund", "exchange".',
    ),
    Scenario(
        "medical", "Doctor's visit", "🏥", "daily",
        "Describing symptoms, appointments, prescriptions",
        "Focus on medical situations: describing symptoms, making appointments, understanding "
        "prescriptions, asking about treatment. Practice health-related vocabulary clearly. Include "
        'vocabulary like "symptoms", "appointment", "prescription", "medication", "insurance".',
    ),
    Scenario(
        "bank", "Bank", "🏦", "daily",
        "Opening accounts, transfers, banking questions",
        "Focus on banking situations: opening accounts, making transactions, asking about services, "
        "resolving issues. Practice financial vocabulary. Include vocabulary like \"account\", "
        '"transfer", "balance", "deposit", "withdrawal", "interest rate".',
    ),
    # Social
    Scenario(
        "introduction", "Introductions", "👋", "social",
        "Introducing yourself, first meetings, greetings",
        "Focus on introductions and greetings: meeting new people, introducing yourself and others, "
        "starting conversations. Practice friendly, natural introductions. Include vocabulary like "
        '"nice to meet you", "background", "interests", "where are you from", "what do you do".',
    ),
    Scenario(
        "hobbies", "Hobbies", "🎸", "social",
        "Talking about hobbies and free time",
        "Focus on talking about hobbies and interests: discussing activities you enjoy, sharing "
        "experiences, making plans. Practice expressing preferences and enthusiasm. Include "
        'vocabulary like "passionate about", "in my free time", "I enjoy", "recently started", '
        '"favorite activity".',
    ),
    Scenario(
        "opinions", "Sharing opinions", "💭", "social",
        "Exchanging views, agreeing and disagreeing",
        "Focus on expressing and discussing opinions: stating your views, agreeing/disagreeing "
        "politely, giving reasons, asking for others' opinions. Practice persuasive yet respectful "
        'communication. Include vocabulary like "I think", "in my opinion", "I agree/disagree", '
        '"on the other hand", "that\'s a good point".',
    ),
    Scenario(
        "smalltalk", "Small talk", "☕", "social",
        "Weather, weekend plans and other light chat",
        "Focus on casual small talk: weather, weekend plans, recent events, current activities. "
        "Practice natural, friendly conversation. Include vocabulary like \"how was your weekend\", "
        '"the weather", "plans for", "recently", "by the way".',
    ),
)}


def get_scenario(scenario_id: Optional[str]) -> Optional[Scenario]:
    """Get a scenario by id, or None if unknown."""
    if not scenario_id:
        return None
    return SCENARIOS.get(scenario_id.strip())


def get_all_scenarios() -> List[Scenario]:
    return list(SCENARIOS.values())


def get_scenarios_by_category() -> Dict[str, List[Scenario]]:
    """Scenarios grouped under every category, in catalog order."""
    return {
        category: [s for s in SCENARIOS.values() if s.category == category]
        for category in SCENARIO_CATEGORIES
    }


def scenario_focus(scenario: Optional[str]) -> Optional[str]:
    """Instruction text for a scenario id, or the free-text focus itself.

    Args:
        scenario: A catalog id or a short free-text description

    Returns:
        Focus text, or None when scenario is missing or blank
    """
    if not scenario or not scenario.strip():
        return None
    known = get_scenario(scenario)
    if known is not None:
        return known.instructions
    return scenario.strip()
