# alignment/core/messages.py

import random
from typing import List, Optional

LOCAL_TITLE = "Alignment Check-In"
FIRST_TITLE = "Daily Alignment Reminder"
SECOND_TITLE = "Evening Alignment Check"
COUNTDOWN_TITLE = "Daily Alignment Reminder"

ENCOURAGEMENTS: List[str] = [
    "Hey beautiful soul, how's your intention feeling today? 🌟",
    "Quick check-in: Are you living your alignment right now? ✨",
    "Pause for a breath... how are you embodying your intention? 🧘",
    "Your daily reminder: You're exactly where you need to be 💫",
    "Time to check in with yourself - how's your heart today? 💙",
    "A gentle nudge from your future self: Stay aligned! 🌈",
    "How's your emotional weather today? ⛅",
    "You're doing amazing! Take a moment to feel your intention 🌺",
    "Present moment check: Is your intention alive in you? 🍃",
    "Your alignment is calling... will you answer? 📞✨",
    "A mindful pause to honor your intention 🙏",
    "Quick vibe check: How aligned do you feel? 🎯",
    "Hey you! Remember that beautiful intention of yours? 💝",
    "Time to sprinkle some intention into this moment ✨",
    "Your daily alignment loves you - show it some love back! 💕",
    "Gentle reminder: Your emotions are valid, your intention is powerful 🌊",
    "How are you showing up for yourself today? 🌱",
    "Take a breath, check in, stay aligned 🌬️",
    "Your intention is your superpower - using it today? 🦸",
    "A little love note from your aligned self 💌",
]

MORNING: List[str] = [
    "Good morning! How will you embody your intention today? ☀️",
    "Rise and shine! Your alignment is ready for you 🌅",
    "Fresh day, fresh alignment - how are you feeling? 🌄",
]

AFTERNOON: List[str] = [
    "Midday check-in: Still aligned with your intention? 🌞",
    "Afternoon pause: How's your alignment holding up? ☕",
    "Quick afternoon refresh - reconnect with your intention 🌤️",
]

EVENING: List[str] = [
    "Evening reflection: Did you honor your intention today? 🌙",
    "Winding down... how did your alignment show up today? 🌆",
    "As the day ends, celebrate your aligned moments ⭐",
]

# ad-hoc countdown deliveries
SHORT_PHRASES: List[str] = [
    "Pause what you're doing for a moment",
    "Take a deep breath and recall your intention and emotion",
    "Notice how you're showing up in the present moment",
    "Gently adjust your awareness and energy if needed",
]


def encouragement_for_slot(index: int) -> str:
    """Deterministic rotation through the pool by slot position."""
    return ENCOURAGEMENTS[index % len(ENCOURAGEMENTS)]


def message_for_hour(hour: int, rng: Optional[random.Random] = None) -> str:
    rng = rng or random
    if 5 <= hour < 12:
        return rng.choice(MORNING)
    if 12 <= hour < 17:
        return rng.choice(AFTERNOON)
    if 17 <= hour < 22:
        return rng.choice(EVENING)
    return rng.choice(ENCOURAGEMENTS)


def short_phrase(rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice(SHORT_PHRASES)
