from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status

from app.modules.auth.schemas import AccessTokenResponse, EmailPasswordForm
from app.modules.auth.service import AuthService
from app.modules.users.schemas import UserCreate, UserResponse

router = APIRouter()


@router.post(
    "/signup",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a patient or doctor account",
)
async def signup(
    user_in: UserCreate,
    auth_service: AuthService = Depends(AuthService),
) -> Any:
    if await auth_service.user_service.get_by_email(user_in.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="The user with this email already exists in the system",
        )
    user = await auth_service.signup(user_in)
    return UserResponse.model_validate(user.model_dump())


@router.post(
    "/login/access-token",
    response_model=AccessTokenResponse,
    summary="Login to get access token",
)
async def login_access_token(
    form_data: EmailPasswordForm = Depends(),
    auth_service: AuthService = Depends(AuthService),
) -> Any:
    """
    OAuth2 compatible token login, get an access token for future requests.
    When authorizing via Swagger UI, put your email in the `username` field.
    """
    if not form_data.email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email or username is required",
        )

    user = await auth_service.authenticate(form_data.email, form_data.password)
    if not user:
        raise HTTPException(status_code=400, detail="Incorrect email or password")

    return AccessTokenResponse(
        access_token=auth_service.create_access_token(user.id),
        roles=user.roles,
    )
