"""Prompt pairs for imposter rounds."""

from __future__ import annotations

import random
from typing import TYPE_CHECKING, Protocol

import structlog

from imposter_cards.exceptions import InvalidCategoryError
from imposter_cards.game.models import PromptPair
from imposter_cards.game.types import PromptCategory

if TYPE_CHECKING:
    from imposter_cards.game.types import RandomSource

logger = structlog.get_logger(__name__)

DEFAULT_PROMPTS: dict[str, list[tuple[str, str]]] = {
    PromptCategory.GENERAL: [
        ("What's your favorite season?", "What's your least favorite season?"),
        ("How many hours of sleep do you need?", "How many cups of coffee do you drink a day?"),
        ("What's the best gift you've ever received?", "What's the best gift you've ever given?"),
        ("Where would you live if you could live anywhere?", "Where did you go on your last vacation?"),
        ("What's a skill you wish you had?", "What's a skill you're proud of?"),
    ],
    PromptCategory.DEEP: [
        ("What do you want to be remembered for?", "What do you want to accomplish this year?"),
        ("What's a belief you've changed your mind about?", "What's an opinion you'll never change?"),
        ("When did you last cry?", "When did you last laugh until it hurt?"),
        ("What scares you about getting older?", "What excites you about getting older?"),
        ("Who has influenced you the most?", "Who do you text the most?"),
    ],
    PromptCategory.SOCIAL: [
        ("How many close friends do you have?", "How many group chats are you in?"),
        ("What's the worst party you've been to?", "What's the best party you've been to?"),
        ("What's your go-to karaoke song?", "What's your go-to shower song?"),
        ("Who in this room would survive a zombie apocalypse?", "Who in this room would win a cooking contest?"),
        ("What's the most awkward thing you've said to a stranger?", "What's the nicest thing a stranger has said to you?"),
    ],
    PromptCategory.FUN: [
        ("What animal would you be?", "What animal would you keep as a pet?"),
        ("What superpower would you choose?", "What superpower would be the most useless?"),
        ("What would you name a boat?", "What would you name a band?"),
        ("What's your villain origin story?", "What's your superhero origin story?"),
        ("What would you do with a free day?", "What would you do with a free million dollars?"),
    ],
    PromptCategory.FOOD: [
        ("What's your favorite pizza topping?", "What topping should never go on pizza?"),
        ("What would your last meal be?", "What did you eat for breakfast today?"),
        ("What's your 3am snack?", "What's your movie theater snack?"),
        ("What food did you hate as a kid?", "What food could you eat every day?"),
        ("What's the spiciest thing you've eaten?", "What's the sweetest thing you've eaten?"),
    ],
    PromptCategory.ENTERTAINMENT: [
        ("What's the last movie that made you cry?", "What's the last movie that made you laugh?"),
        ("What show would you binge again?", "What show did you quit halfway?"),
        ("Which celebrity would you want as a mentor?", "Which celebrity would you want as a roommate?"),
        ("What song is stuck in your head?", "What song do you skip every time?"),
        ("What's the fastest you've finished a series?", "What's the longest movie you've sat through?"),
    ],
    PromptCategory.SPICY: [
        ("How old were you when you had your first kiss?", "How old were you when you started high school?"),
        ("What's your biggest red flag?", "What's your biggest pet peeve?"),
        ("What's the biggest lie you've told a partner?", "What's the biggest lie you've told at work?"),
        ("What's the worst thing you've done while drunk?", "What's the funniest thing you've done while tired?"),
        ("What nickname would your ex give you?", "What nickname would your coworkers give you?"),
        ("How far would you travel for a hookup?", "How far would you travel for good food?"),
        ("What's your most controversial bedroom opinion?", "What's your most controversial food opinion?"),
    ],
}

TIMEFRAMES = ["this week", "this month", "this year", "in high school", "in college", "last night", "at 3am"]
LOCATIONS = ["at school", "at work", "at a party", "in public", "at home", "at the gym", "at a wedding"]


class PromptSource(Protocol):
    """Supplies prompt pairs for a category."""

    def categories(self) -> list[str]:
        """Names of the categories that can be drawn from."""
        ...

    def draw(self, category: str) -> PromptPair:
        """Draw a prompt pair.

        Raises:
            InvalidCategoryError: If the category is unknown or empty.
        """
        ...


class PromptBank:
    """Manages prompt selection for imposter rounds.

    Provides functionality for:
    - Drawing a random majority/imposter pair from a category (or from all of them)
    - Avoiding repeats until every pair in the pool has been dealt
    - Light templating: sometimes appending a shared timeframe or location

    Attributes:
        prompts: Category name -> list of (majority, imposter) texts.
        modifier_chance: Probability of appending a modifier to a drawn pair.
    """

    def __init__(
        self,
        *,
        prompts: dict[str, list[tuple[str, str]]] | None = None,
        rng: RandomSource | None = None,
        modifier_chance: float = 0.3,
    ) -> None:
        """Initialize the prompt bank.

        Args:
            prompts: Custom prompt table. If None, uses the built-in table.
            rng: Random source. If None, uses a fresh ``random.Random``.
            modifier_chance: Probability (0.0-1.0) of templating a drawn pair.
        """
        table = prompts if prompts is not None else DEFAULT_PROMPTS
        self.prompts = {str(category): list(pairs) for category, pairs in table.items()}
        self.modifier_chance = max(0.0, min(1.0, modifier_chance))
        self._rng = rng or random.Random()
        self._used: set[tuple[str, int]] = set()

    def categories(self) -> list[str]:
        """Names of the non-empty categories, plus ``random`` when any exist."""
        names = [category for category, pairs in self.prompts.items() if pairs]
        if names:
            names.append(PromptCategory.RANDOM.value)
        return names

    def draw(self, category: str) -> PromptPair:
        """Draw a prompt pair from a category.

        Args:
            category: Category name, or ``random`` for every category.

        Returns:
            The drawn pair.

        Raises:
            InvalidCategoryError: If the category is unknown or has no prompts.
        """
        pool = self._pool(category)
        if not pool:
            raise InvalidCategoryError(category)

        fresh = [key for key in pool if key not in self._used]
        if not fresh:
            self._used.difference_update(pool)
            fresh = pool
            logger.debug("Prompt pool exhausted, reshuffling", category=category, size=len(pool))

        key = self._rng.choice(fresh)
        self._used.add(key)

        source_category, index = key
        majority, imposter = self.prompts[source_category][index]
        if self._rng.random() < self.modifier_chance:
            majority, imposter = self._apply_modifier(majority, imposter)

        return PromptPair(
            majority=majority,
            imposter=imposter,
            category=source_category,
            id=f"{source_category}-{index}",
        )

    def reset(self) -> None:
        """Forget which pairs have been dealt."""
        self._used.clear()

    def _pool(self, category: str) -> list[tuple[str, int]]:
        if category == PromptCategory.RANDOM:
            names = list(self.prompts)
        elif category in self.prompts:
            names = [category]
        else:
            return []
        return [(name, index) for name in names for index in range(len(self.prompts[name]))]

    def _apply_modifier(self, majority: str, imposter: str) -> tuple[str, str]:
        """Append the same timeframe or location to both texts where it reads naturally."""
        if not self._can_modify(majority):
            return majority, imposter

        if self._rng.random() < 0.5:
            keyword, value = "when", self._rng.choice(TIMEFRAMES)
        else:
            keyword, value = "where", self._rng.choice(LOCATIONS)

        def modify(text: str) -> str:
            if keyword in text.lower():
                return text
            return f"{text.rstrip('?')} {value}?"

        return modify(majority), modify(imposter)

    @staticmethod
    def _can_modify(prompt: str) -> bool:
        lowered = prompt.lower()
        return "someone" in lowered or "person" in lowered or "you" not in lowered
