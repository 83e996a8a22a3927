"""Emotion vocabulary: the collaborator that resolves a Neuron's emotion tag.

Records store only the tag's name. Resolution goes through whatever
vocabulary the store was opened with; BasicVocabulary is the default.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Protocol

from mindstore.errors import UnknownEmotion


class Emotion(StrEnum):
    """Basic affect labels."""

    JOY = "joy"
    TRUST = "trust"
    FEAR = "fear"
    SURPRISE = "surprise"
    SADNESS = "sadness"
    DISGUST = "disgust"
    ANGER = "anger"
    ANTICIPATION = "anticipation"
    NEUTRAL = "neutral"


class EmotionVocabulary(Protocol):
    def lookup(self, name: str) -> object: ...

    def name_of(self, emotion: object) -> str: ...


class BasicVocabulary:
    """Vocabulary over the Emotion enum. Lookup is case-insensitive."""

    def lookup(self, name: str) -> Emotion:
        try:
            return Emotion(name.strip().lower())
        except ValueError:
            raise UnknownEmotion(name) from None

    def name_of(self, emotion: object) -> str:
        if isinstance(emotion, Emotion):
            return emotion.value
        if isinstance(emotion, str):
            return self.lookup(emotion).value
        raise UnknownEmotion(repr(emotion))
