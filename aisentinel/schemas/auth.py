from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from typing_extensions import Annotated


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SessionTokenSchema(_CamelModel):
    session_token: Annotated[str, Field(alias="sessionToken", min_length=1, max_length=255)]


class CreateSessionSchema(_CamelModel):
    email: Annotated[str, Field(max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")]
    role_level: Optional[int] = Field(default=None, alias="roleLevel", ge=0, le=1000)
    company_name: Optional[str] = Field(default=None, alias="companyName", max_length=255)


class VerificationRequestSchema(BaseModel):
    email: Annotated[str, Field(max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")]


class UserSchema(_CamelModel):
    id: str
    email: str
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    role: str
    role_level: int = Field(alias="roleLevel")
    company_id: Optional[int] = Field(default=None, alias="companyId")
    company_name: Optional[str] = Field(default=None, alias="companyName")


def user_payload(user) -> dict:
    return UserSchema(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        role=user.role,
        role_level=user.role_level,
        company_id=user.company_id,
        company_name=user.company.name if user.company else None,
    ).model_dump(by_alias=True)
