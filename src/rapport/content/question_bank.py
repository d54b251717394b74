"""
Static question content for Rapport.

Two pieces:
  - one fixed fallback question per vibe, used whenever generation fails
  - a starter deck per tone, used to open a conversation before there is
    enough transcript to analyze
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from ..core.models import ConnectionDomain, Vibe

FALLBACK_QUESTIONS: Dict[Vibe, str] = {
    Vibe.FUN: "What's something that made you laugh recently?",
    Vibe.THOUGHTFUL: "What's an idea that's been on your mind lately?",
    Vibe.DEEP: "What do you need to hear right now?",
    Vibe.MIXED: "What's been the best part of your week?",
}


def fallback_question(vibe: Vibe) -> str:
    """The fixed offline question for a vibe; unknown vibes get the generic one."""
    return FALLBACK_QUESTIONS.get(vibe, FALLBACK_QUESTIONS[Vibe.MIXED])


@dataclass(frozen=True)
class StarterQuestion:
    id: str
    vibe: Vibe
    domain: ConnectionDomain
    question_text: str


D = ConnectionDomain

STARTER_DECK: List[StarterQuestion] = [
    # Fun
    StarterQuestion("fun_1", Vibe.FUN, D.CURRENT_SITUATION, "Describe your ideal weekend in three words."),
    StarterQuestion("fun_2", Vibe.FUN, D.PERSONAL_HISTORY, "What's your go-to karaoke song?"),
    StarterQuestion("fun_3", Vibe.FUN, D.VALUES_BELIEFS, "If you could have dinner with any fictional character, who would it be?"),
    StarterQuestion("fun_4", Vibe.FUN, D.RELATIONAL_STYLE, "What's the weirdest food combination you secretly love?"),
    StarterQuestion("fun_5", Vibe.FUN, D.PERSONAL_HISTORY, "If your life was a movie genre, what would it be?"),
    StarterQuestion("fun_6", Vibe.FUN, D.ASPIRATIONS, "What would your superhero name and power be?"),
    StarterQuestion("fun_7", Vibe.FUN, D.PERSONAL_HISTORY, "What's the most spontaneous thing you've ever done?"),
    StarterQuestion("fun_8", Vibe.FUN, D.ASPIRATIONS, "If you could instantly master any skill, what would it be?"),

    # Thoughtful
    StarterQuestion("thoughtful_1", Vibe.THOUGHTFUL, D.VALUES_BELIEFS, "What does success mean to you, really?"),
    StarterQuestion("thoughtful_2", Vibe.THOUGHTFUL, D.VALUES_BELIEFS, "What's a truth you think society ignores?"),
    StarterQuestion("thoughtful_3", Vibe.THOUGHTFUL, D.VALUES_BELIEFS, "Do you believe creativity or logic drives progress more?"),
    StarterQuestion("thoughtful_4", Vibe.THOUGHTFUL, D.PERSONAL_HISTORY, "What book or idea changed how you see the world?"),
    StarterQuestion("thoughtful_5", Vibe.THOUGHTFUL, D.ASPIRATIONS, "If you could solve one global problem, what would it be?"),
    StarterQuestion("thoughtful_6", Vibe.THOUGHTFUL, D.RELATIONAL_STYLE, "How do you think technology is changing human connection?"),
    StarterQuestion("thoughtful_7", Vibe.THOUGHTFUL, D.PERSONAL_HISTORY, "What's a lesson you learned the hard way?"),
    StarterQuestion("thoughtful_8", Vibe.THOUGHTFUL, D.PERSONAL_HISTORY, "If you could give advice to your younger self, what would it be?"),

    # Deep
    StarterQuestion("deep_1", Vibe.DEEP, D.EMOTIONS, "When do you feel most yourself?"),
    StarterQuestion("deep_2", Vibe.DEEP, D.EMOTIONS, "What makes you feel truly seen?"),
    StarterQuestion("deep_3", Vibe.DEEP, D.RELATIONAL_STYLE, "What relationship has shaped you the most?"),
    StarterQuestion("deep_4", Vibe.DEEP, D.PERSONAL_HISTORY, "If you could relive one year of your life, which one would it be and why?"),
    StarterQuestion("deep_5", Vibe.DEEP, D.EMOTIONS, "What's something you're afraid to admit?"),
    StarterQuestion("deep_6", Vibe.DEEP, D.EMOTIONS, "What are you still healing from?"),
    StarterQuestion("deep_7", Vibe.DEEP, D.VALUES_BELIEFS, "What's a belief you held that completely changed?"),
    StarterQuestion("deep_8", Vibe.DEEP, D.ASPIRATIONS, "What legacy do you want to leave behind?"),
    StarterQuestion("deep_9", Vibe.DEEP, D.RELATIONAL_STYLE, "Who do you wish you could talk to one more time?"),
]


def get_starter_deck(vibe: Vibe) -> List[StarterQuestion]:
    """Starter questions for a tone, in deck order. Mixed gets every deck."""
    if vibe == Vibe.MIXED:
        return list(STARTER_DECK)
    return [q for q in STARTER_DECK if q.vibe == vibe]


def next_starter_question(
    vibe: Vibe,
    asked_questions: Iterable[str],
) -> Optional[StarterQuestion]:
    """First question of the deck that hasn't been asked yet, or None when exhausted."""
    asked = {q.strip().lower() for q in asked_questions}
    for q in get_starter_deck(vibe):
        if q.question_text.lower() not in asked:
            return q
    return None
