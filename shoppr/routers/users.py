from fastapi import APIRouter, Depends, status

from shoppr.core.dependencies import get_profile_store, get_user_service
from shoppr.core.errors import NotFoundError
from shoppr.schemas.user import LoginRequest, SurveyData, UserCreate, UserUpdate
from shoppr.services.profile_store import ProfileStore
from shoppr.services.user_service import UserService

router = APIRouter(tags=["users"])


def _survey_json(survey) -> dict | None:
    return survey.model_dump(mode="json", by_alias=True) if survey else None


@router.get("/check-username/{username}")
async def check_username(username: str, service: UserService = Depends(get_user_service)):
    """Check whether a username can still be claimed."""
    available = await service.is_username_available(username)
    return {"available": available, "username": username}


@router.post("/users", status_code=status.HTTP_201_CREATED)
async def create_user(body: UserCreate, service: UserService = Depends(get_user_service)):
    user = await service.create_user(body.name, body.username)
    return {"user": user}


@router.get("/users/{user_id}")
async def get_user(user_id: str, service: UserService = Depends(get_user_service)):
    return {"user": await service.get_user(user_id)}


@router.put("/users/{user_id}")
async def update_user(user_id: str, body: UserUpdate, service: UserService = Depends(get_user_service)):
    """Update name and username. The old username is released on success."""
    user = await service.update_user(user_id, body.name, body.username)
    return {"user": user}


@router.post("/users/{user_id}/survey")
async def save_survey(user_id: str, body: SurveyData, profiles: ProfileStore = Depends(get_profile_store)):
    survey = await profiles.save_survey(user_id, body)
    return {"success": True, "survey": _survey_json(survey)}


@router.get("/users/{user_id}/survey")
async def get_survey(user_id: str, profiles: ProfileStore = Depends(get_profile_store)):
    survey = await profiles.get_survey(user_id)
    if survey is None:
        raise NotFoundError("Survey not found")
    return {"survey": _survey_json(survey)}


@router.post("/login")
async def login(body: LoginRequest, service: UserService = Depends(get_user_service)):
    """Username-only login; returns the user and their survey (or null)."""
    user, survey = await service.login(body.username)
    return {"user": user, "survey": _survey_json(survey)}
