from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class OAuthRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    action: Literal["create", "wait"]
    oauth_session_id: Optional[str] = Field(None, alias="oauthSessionId")


class OAuthSessionCreated(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    oauth_session_id: str = Field(..., alias="oauthSessionId")
    url: str


class OAuthWaitResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    completed: bool
    oauth_session_id: Optional[str] = Field(None, alias="oauthSessionId")
    message: Optional[str] = None
