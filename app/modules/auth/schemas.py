from fastapi import Form
from pydantic import BaseModel

from app.shared.constants import Role


class AccessTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    roles: list[Role]


# Accepts either `email` or the OAuth2 `username` field used by Swagger's
# "Authorize" dialog; both carry the user's email.
class EmailPasswordForm:
    def __init__(
        self,
        email: str | None = Form(None),
        username: str | None = Form(None),
        password: str = Form(...),
    ) -> None:
        self.email = email or username
        self.password = password
