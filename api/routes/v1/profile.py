"""
api/routes/v1/profile.py -- Profile metadata for the authenticated user.

Routes:
  GET /api/v1/profile               -- id, username, nickname, description
  PUT /api/v1/profile/description   -- replace the description

Both require an access token. The user id always comes from the verified
token, never from the request body, so a caller can only touch their own row.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from api.models import DescriptionResponse, DescriptionUpdate, ProfileResponse
from auth.dependencies import get_current_claims, get_session_service
from auth.models import AccessClaims
from auth.service import SessionService

router = APIRouter()


@router.get("/profile", response_model=ProfileResponse)
def get_profile(
    claims: AccessClaims = Depends(get_current_claims),
    service: SessionService = Depends(get_session_service),
) -> ProfileResponse:
    return ProfileResponse.from_user(service.get_profile(claims.user_id))


@router.put("/profile/description", response_model=DescriptionResponse)
def update_description(
    body: DescriptionUpdate,
    claims: AccessClaims = Depends(get_current_claims),
    service: SessionService = Depends(get_session_service),
) -> DescriptionResponse:
    description = service.update_description(claims.user_id, body.description)
    return DescriptionResponse(message="Description updated successfully", description=description)
