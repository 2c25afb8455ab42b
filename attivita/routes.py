"""
HTTP routes for the attivita API.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from attivita.auth import get_current_user_id
from attivita.dependencies import get_activity_service, get_auth_service
from attivita.errors import ErrorKind, Result
from attivita.schemas import (
    ActivityPayload,
    ActivityResponse,
    HealthResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    UserResponse,
)
from attivita.services import ActivityService, AuthService

logger = logging.getLogger(__name__)

router = APIRouter()

STATUS_BY_ERROR = {
    ErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_OWNER: status.HTTP_400_BAD_REQUEST,
    ErrorKind.ID_MISMATCH: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.EMAIL_TAKEN: status.HTTP_409_CONFLICT,
    ErrorKind.CONCURRENCY_CONFLICT: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.STORAGE_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _unwrap(result: Result):
    """Return the result value or raise the matching HTTPException."""
    if result.is_ok:
        return result.value
    headers = None
    if STATUS_BY_ERROR[result.error] == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    raise HTTPException(
        status_code=STATUS_BY_ERROR[result.error],
        detail=result.message,
        headers=headers,
    )


@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok")


@router.post("/auth/register", response_model=UserResponse)
def register(
    payload: RegisterRequest, auth: AuthService = Depends(get_auth_service)
):
    user = _unwrap(auth.register(payload.email, payload.password))
    return UserResponse.from_record(user)


@router.post("/auth/login", response_model=LoginResponse)
def login(payload: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    token = _unwrap(auth.login(payload.email, payload.password))
    return LoginResponse(token=token)


@router.get("/attivita/byUser", response_model=list[ActivityResponse])
def list_my_activities(
    user_id: str = Depends(get_current_user_id),
    activities: ActivityService = Depends(get_activity_service),
):
    records = _unwrap(activities.list_mine(user_id))
    return [ActivityResponse.from_record(record) for record in records]


@router.post(
    "/attivita",
    response_model=ActivityResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_activity(
    payload: ActivityPayload,
    user_id: str = Depends(get_current_user_id),
    activities: ActivityService = Depends(get_activity_service),
):
    record = _unwrap(activities.create(user_id, payload.to_draft()))
    return ActivityResponse.from_record(record)


@router.put("/attivita/{activity_id}", status_code=status.HTTP_204_NO_CONTENT)
def update_activity(
    activity_id: int,
    payload: ActivityPayload,
    user_id: str = Depends(get_current_user_id),
    activities: ActivityService = Depends(get_activity_service),
):
    _unwrap(
        activities.update(
            user_id, activity_id, payload.to_draft(), body_id=payload.id
        )
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/attivita/{activity_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_activity(
    activity_id: int,
    user_id: str = Depends(get_current_user_id),
    activities: ActivityService = Depends(get_activity_service),
):
    _unwrap(activities.delete(user_id, activity_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
