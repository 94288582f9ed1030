"""User endpoints: hosted UI login, logout and profile."""

import uuid
from typing import Any

from fastapi import APIRouter, Depends
from loguru import logger
from pydantic import BaseModel
from starlette.responses import JSONResponse

from src.user_service.api.http.deps import (
    get_login_flow_service,
    get_oidc_client_service,
    get_user_profile_service,
    require_user,
)
from src.user_service.core.services import (
    LoginFlowService,
    OidcClientService,
    UserProfileService,
)
from src.user_service.core.services.user.user_profile import UserUpdate
from src.user_service.entities.core.user import User

router = APIRouter(prefix="/api/users", tags=["users"])


class LoginCallbackRequest(BaseModel):
    code: str | None = None
    state: str | None = None


@router.get("/login/url")
async def login_url(
    oidc_client: OidcClientService = Depends(get_oidc_client_service),
) -> dict[str, str]:
    """Hosted UI URL to send the browser to, with a fresh opaque state."""
    state = str(uuid.uuid4())
    return {"url": oidc_client.build_login_url(state), "state": state}


@router.post("/login/callback", response_model=None)
async def login_callback(
    body: LoginCallbackRequest,
    login_flow: LoginFlowService = Depends(get_login_flow_service),
    profile: UserProfileService = Depends(get_user_profile_service),
) -> dict[str, Any] | JSONResponse:
    """Finish a hosted UI login with the authorization code it returned."""
    if not body.code:
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": "Authorization code is required"},
        )

    # AuthenticationError is turned into a 401 by the app exception handler
    result = await login_flow.complete_login(body.code, body.state)
    tokens = result.tokens
    return {
        "success": True,
        "message": "Login successful",
        "accessToken": tokens.access_token,
        "idToken": tokens.id_token,
        "refreshToken": tokens.refresh_token,
        "expiresIn": tokens.expires_in,
        "tokenType": tokens.token_type,
        "userInfo": profile.user_info(result.user, result.user.id),
    }


@router.post("/logout")
async def logout(
    user: User = Depends(require_user),
    oidc_client: OidcClientService = Depends(get_oidc_client_service),
) -> dict[str, Any]:
    # tokens are stateless; the client drops them and visits logoutUrl
    logger.info(f"User {user.id} logged out")
    return {
        "success": True,
        "message": "Logout successful",
        "userId": user.id,
        "logoutUrl": oidc_client.build_logout_url(),
    }


@router.get("/me")
async def my_page(
    user: User = Depends(require_user),
    profile: UserProfileService = Depends(get_user_profile_service),
) -> dict[str, Any]:
    return profile.get_my_page(user.id)


@router.put("/me")
async def update_my_info(
    update: UserUpdate,
    user: User = Depends(require_user),
    profile: UserProfileService = Depends(get_user_profile_service),
) -> dict[str, Any]:
    """Update name, phone number or location of the calling user.

    The phone number is stored in international form; a number already held
    by another user is rejected with 409.
    """
    updated = profile.update_user_info(user.id, update)
    return {
        "success": True,
        "message": "User info updated",
        "userInfo": profile.user_info(updated, updated.id),
    }


@router.get("/count")
async def user_count(
    profile: UserProfileService = Depends(get_user_profile_service),
) -> dict[str, int]:
    return {"count": profile.count_users()}


@router.get("/health")
async def users_health() -> dict[str, str]:
    return {"status": "UP", "service": "user-service"}


@router.get("/{user_id}/name")
async def user_name(
    user_id: str,
    profile: UserProfileService = Depends(get_user_profile_service),
) -> dict[str, str]:
    """Display name lookup used by sibling services."""
    return {"userId": user_id, "userName": profile.get_user_name(user_id)}
