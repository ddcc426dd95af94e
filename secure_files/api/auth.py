from fastapi import APIRouter, Depends, status

from secure_files.api.deps import get_current_user_id, get_user_directory
from secure_files.core.errors import AuthError
from secure_files.schemas.common import StandardResponse
from secure_files.schemas.user import Token, UserLogin, UserOut, UserRegister
from secure_files.services.users import UserDirectory

router = APIRouter()


@router.post(
    "/register",
    response_model=StandardResponse[UserOut],
    status_code=status.HTTP_201_CREATED,
)
def register(user_data: UserRegister, users: UserDirectory = Depends(get_user_directory)):
    """
    Create a new account
    """
    user = users.register(user_data.username, user_data.email, user_data.password)
    return StandardResponse(
        success=True,
        message="Registered",
        data=UserOut.model_validate(user),
    )


@router.post("/login", response_model=StandardResponse[Token])
def login(credentials: UserLogin, users: UserDirectory = Depends(get_user_directory)):
    """
    Exchange email + password for a bearer token
    """
    result = users.login(credentials.email, credentials.password)
    expires_at = result.expires_at.replace(microsecond=0).isoformat().replace("+00:00", "Z")

    return StandardResponse(
        success=True,
        message="Logged in",
        data=Token(
            access_token=result.access_token,
            token_type="bearer",
            expires_in=result.expires_in,
            expires_at=expires_at,
            user=UserOut.model_validate(result.user),
        ),
    )


@router.get("/me", response_model=StandardResponse[UserOut])
def get_current_user_info(
    user_id: int = Depends(get_current_user_id),
    users: UserDirectory = Depends(get_user_directory),
):
    """
    Current account (requires a token)
    """
    user = users.get(user_id)
    if user is None:
        raise AuthError("Unknown user")
    return StandardResponse(success=True, message="OK", data=UserOut.model_validate(user))
