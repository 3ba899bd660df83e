import logging
import uuid
from datetime import UTC, datetime

from shoppr.core.errors import ConflictError, NotFoundError, ValidationError
from shoppr.core.kv_store import KeyValueStore
from shoppr.schemas.user import SurveyRecord, UserProfile
from shoppr.services.profile_store import ProfileStore, user_key

logger = logging.getLogger(__name__)


def clean_username(username: str | None) -> str:
    return (username or "").strip().lower()


def username_key(username: str) -> str:
    return f"username:{username}"


class UserService:
    """
    Users and the username reverse index.

    ``username:{name}`` keys are reserved with ``set_if_absent`` before the
    user record is written, so two concurrent claims on one name cannot both
    succeed.
    """

    def __init__(self, store: KeyValueStore, profiles: ProfileStore | None = None):
        self.store = store
        self.profiles = profiles if profiles is not None else ProfileStore(store)

    @staticmethod
    def _require_fields(name: str | None, username: str | None) -> tuple[str, str]:
        clean_name = (name or "").strip()
        clean = clean_username(username)
        if not clean_name or not clean:
            raise ValidationError("Name and username are required")
        return clean_name, clean

    async def is_username_available(self, username: str) -> bool:
        clean = clean_username(username)
        if not clean:
            raise ValidationError("Username cannot be empty")
        return await self.store.get(username_key(clean)) is None

    async def create_user(self, name: str, username: str) -> UserProfile:
        clean_name, clean = self._require_fields(name, username)

        user_id = str(uuid.uuid4())
        if not await self.store.set_if_absent(username_key(clean), user_id):
            raise ConflictError("Username is already taken")

        user = UserProfile(
            id=user_id,
            name=clean_name,
            username=clean,
            created_at=datetime.now(UTC).isoformat(),
        )
        try:
            await self.store.set(user_key(user_id), user.model_dump(mode="json"))
        except Exception:
            # Release the reservation so the name does not point at a missing user
            await self.store.delete(username_key(clean))
            raise
        logger.info(f"Created user {user_id} ({clean})")
        return user

    async def get_user(self, user_id: str) -> UserProfile:
        data = await self.store.get(user_key(user_id))
        if not data:
            raise NotFoundError("User not found")
        return UserProfile.model_validate(data)

    async def update_user(self, user_id: str, name: str, username: str) -> UserProfile:
        clean_name, clean = self._require_fields(name, username)
        current = await self.get_user(user_id)

        renamed = clean != current.username
        claimed = False
        if renamed:
            # Claim the new name first; the old mapping goes only once the record is written
            claimed = await self.store.set_if_absent(username_key(clean), user_id)
            if not claimed and await self.store.get(username_key(clean)) != user_id:
                raise ConflictError("Username is already taken")

        updated = current.model_copy(update={"name": clean_name, "username": clean})
        try:
            await self.store.set(user_key(user_id), updated.model_dump(mode="json"))
        except Exception:
            if claimed:
                await self.store.delete(username_key(clean))
            raise

        if renamed:
            await self.store.delete(username_key(current.username))
            logger.info(f"User {user_id} renamed {current.username} -> {clean}")
        return updated

    async def login(self, username: str) -> tuple[UserProfile, SurveyRecord | None]:
        clean = clean_username(username)
        if not clean:
            raise ValidationError("Username is required")

        user_id = await self.store.get(username_key(clean))
        if not user_id:
            raise NotFoundError("User not found")

        user = await self.get_user(user_id)
        survey = await self.profiles.get_survey(user_id)
        return user, survey
