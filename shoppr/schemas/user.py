from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class UserProfile(BaseModel):
    id: str
    name: str
    username: str
    created_at: str  # ISO-8601, UTC


class UserCreate(BaseModel):
    name: str = ""
    username: str = ""


class UserUpdate(UserCreate):
    pass


class LoginRequest(BaseModel):
    username: str = ""


class Budget(str, Enum):
    BUDGET = "budget"
    MODERATE = "moderate"
    PREMIUM = "premium"
    LUXURY = "luxury"
    VARIES = "varies"


class PersonalizationProfile(BaseModel):
    """
    Preferences collected by the onboarding survey.

    Serialized with camelCase keys (``brandPreference``, ``stylePreferences``...)
    to match what the mobile client sends and stores.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    gender: str = ""
    categories: list[str] = Field(default_factory=list)
    budget: Budget | None = None
    motivations: list[str] = Field(default_factory=list, max_length=3)  # Most important first
    brand_preference: str = ""
    shopping_pattern: str = ""
    style_preferences: list[str] = Field(default_factory=list)
    deal_sensitivity: str = ""
    other_category: str = ""

    @field_validator("categories", "style_preferences")
    @classmethod
    def _dedupe(cls, values: list[str]) -> list[str]:
        # Sets on the wire, but keep the client's order
        return list(dict.fromkeys(values))

    @field_validator("budget", mode="before")
    @classmethod
    def _empty_budget(cls, value):
        return value or None

    def signature(self) -> tuple[str, str]:
        """Coarse (gender, budget) tuple used in AI cache keys."""
        return (self.gender or "none", self.budget.value if self.budget else "none")


class SurveyData(PersonalizationProfile):
    """Survey body posted by the client (profile plus the name it collected)."""
    name: str = ""
    username: str = ""


class SurveyRecord(SurveyData):
    """Survey as persisted under ``survey:{user_id}``."""
    user_id: str = Field(alias="user_id")
    completed_at: str = Field(alias="completed_at")


def profile_signature(profile: PersonalizationProfile | None) -> tuple[str, str]:
    if profile is None:
        return ("none", "none")
    return profile.signature()
