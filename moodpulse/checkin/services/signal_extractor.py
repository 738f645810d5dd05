"""
Mood signal extraction from free-text chat replies.

Deterministic keyword/threshold classifier: a digit 1-5 anywhere in the
reply is the mood score, otherwise keyword categories decide. Sentiment is
scored independently from a fixed word list.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class SentimentLabel(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


@dataclass(frozen=True)
class Signal:
    """Structured reading of one inbound message."""
    mood_score: Optional[int]
    sentiment_score: float
    sentiment_label: SentimentLabel


class SignalExtractor:
    """
    Converts a chat reply into a mood score and sentiment.
    """

    MOOD_DIGITS = re.compile(r"[1-5]")

    # Ordered most positive first; first matching category wins
    MOOD_KEYWORDS: Tuple[Tuple[int, Tuple[str, ...]], ...] = (
        (5, ("great", "excellent", "amazing", "happy", "wonderful")),
        (4, ("good", "fine", "okay")),
        (3, ("neutral", "average", "meh")),
        (2, ("bad", "poor", "tired")),
        (1, ("terrible", "awful", "stressed", "overwhelmed")),
    )

    POSITIVE_WORDS = ("good", "great", "excellent", "happy", "amazing", "wonderful")
    NEGATIVE_WORDS = ("bad", "terrible", "awful", "stressed", "tired", "overwhelmed")

    SENTIMENT_STEP = 0.2
    POSITIVE_THRESHOLD = 0.1
    NEGATIVE_THRESHOLD = -0.1

    def __init__(self):
        self._category_patterns = [
            (score, self._word_pattern(words)) for score, words in self.MOOD_KEYWORDS
        ]
        self._positive_pattern = self._word_pattern(self.POSITIVE_WORDS)
        self._negative_pattern = self._word_pattern(self.NEGATIVE_WORDS)

    @staticmethod
    def _word_pattern(words: Tuple[str, ...]) -> "re.Pattern[str]":
        return re.compile(r"\b(?:" + "|".join(map(re.escape, words)) + r")\b", re.IGNORECASE)

    def extract(self, raw_text: Optional[str]) -> Signal:
        """
        Extract mood score and sentiment from a reply.

        Args:
            raw_text: Message body as received (may be empty)

        Returns:
            Signal; mood_score is None when nothing matched
        """
        text = (raw_text or "").strip()
        sentiment_score = self.sentiment_score(text)
        return Signal(
            mood_score=self.mood_score(text),
            sentiment_score=sentiment_score,
            sentiment_label=self.sentiment_label(sentiment_score),
        )

    def mood_score(self, text: str) -> Optional[int]:
        """Digit rule first, keyword categories second."""
        match = self.MOOD_DIGITS.search(text)
        if match:
            return int(match.group(0))

        for score, pattern in self._category_patterns:
            if pattern.search(text):
                return score

        return None

    def sentiment_score(self, text: str) -> float:
        """+0.2 per positive word, -0.2 per negative word, clamped to [-1, 1]."""
        positives = len(self._positive_pattern.findall(text))
        negatives = len(self._negative_pattern.findall(text))
        score = (positives - negatives) * self.SENTIMENT_STEP
        return round(max(-1.0, min(1.0, score)), 2)

    def sentiment_label(self, score: float) -> SentimentLabel:
        if score > self.POSITIVE_THRESHOLD:
            return SentimentLabel.POSITIVE
        if score < self.NEGATIVE_THRESHOLD:
            return SentimentLabel.NEGATIVE
        return SentimentLabel.NEUTRAL


_default_extractor = SignalExtractor()


def extract(raw_text: Optional[str]) -> Signal:
    """Module-level shortcut using a shared extractor."""
    return _default_extractor.extract(raw_text)
