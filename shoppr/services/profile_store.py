import logging
from datetime import UTC, datetime

from pydantic import ValidationError as SchemaValidationError

from shoppr.core.errors import NotFoundError
from shoppr.core.kv_store import KeyValueStore
from shoppr.schemas.user import PersonalizationProfile, SurveyData, SurveyRecord

logger = logging.getLogger(__name__)


def survey_key(user_id: str) -> str:
    return f"survey:{user_id}"


def user_key(user_id: str) -> str:
    return f"user:{user_id}"


class ProfileStore:
    """Survey-backed personalization profiles, keyed by user id."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def get_survey(self, user_id: str) -> SurveyRecord | None:
        data = await self.store.get(survey_key(user_id))
        if not data:
            return None
        try:
            return SurveyRecord.model_validate(data)
        except SchemaValidationError as e:
            logger.warning(f"Ignoring malformed survey for {user_id}: {e.error_count()} errors")
            return None

    async def get_profile(self, user_id: str) -> PersonalizationProfile | None:
        """Profile used by search. Absence is not an error."""
        return await self.get_survey(user_id)

    async def save_survey(self, user_id: str, survey: SurveyData) -> SurveyRecord:
        """Replace the user's survey. Raises NotFoundError for unknown users."""
        if not await self.store.get(user_key(user_id)):
            raise NotFoundError("User not found")

        record = SurveyRecord(
            **survey.model_dump(by_alias=True),
            user_id=user_id,
            completed_at=datetime.now(UTC).isoformat(),
        )
        await self.store.set(survey_key(user_id), record.model_dump(mode="json", by_alias=True))
        logger.info(f"Survey saved for {user_id} (gender={survey.gender or 'unspecified'})")
        return record
