from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class Credentials(BaseModel):
    username: str
    password: str


class LoginResponse(BaseModel):
    token: str
    is_admin: bool


class PasswordChange(BaseModel):
    old_password: str
    new_password: str


class LogoutEventIn(BaseModel):
    """Client logout event as posted to /analytics/logout (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True)

    timestamp: Optional[str] = None
    type: Literal['manual', 'auto', 'server_error', 'network_error']
    reason: str = Field(..., max_length=500)
    user_agent: Optional[str] = Field(None, alias='userAgent', max_length=500)
    session_duration_ms: Optional[int] = Field(None, alias='sessionDuration', ge=0)
    last_activity: Optional[str] = Field(None, alias='lastActivity')
    error_details: Optional[str] = Field(None, alias='errorDetails', max_length=2000)
    api_endpoint: Optional[str] = Field(None, alias='apiEndpoint', max_length=500)
    http_status: Optional[int] = Field(None, alias='httpStatus')
