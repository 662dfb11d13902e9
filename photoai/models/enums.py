"""Enumerations for the photo AI backend."""

from enum import Enum


class JobStatus(str, Enum):
    """Status of a provider job as recorded on its row. Only moves forward."""
    PENDING = "Pending"
    GENERATED = "Generated"


class ModelType(str, Enum):
    MAN = "Man"
    WOMAN = "Woman"
    OTHERS = "Others"


class Ethnicity(str, Enum):
    WHITE = "White"
    BLACK = "Black"
    ASIAN_AMERICAN = "Asian American"
    EAST_ASIAN = "East Asian"
    SOUTH_EAST_ASIAN = "South East Asian"
    SOUTH_ASIAN = "South Asian"
    MIDDLE_EASTERN = "Middle Eastern"
    PACIFIC = "Pacific"
    HISPANIC = "Hispanic"


class EyeColor(str, Enum):
    BROWN = "Brown"
    BLUE = "Blue"
    HAZEL = "Hazel"
    GRAY = "Gray"


class WebhookKind(str, Enum):
    """Which completion a webhook reports."""
    TRAINING = "training"
    IMAGE = "image"


class WebhookOutcome(str, Enum):
    """What a completion webhook did to local state."""
    APPLIED = "applied"        # Pending rows moved to Generated
    DUPLICATE = "duplicate"    # rows already Generated, redelivery
    DEFERRED = "deferred"      # no row yet, held in the inbox
    IGNORED = "ignored"        # provider reported failure
