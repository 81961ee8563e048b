# lms/schemas/media.py
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SignedMediaToken(BaseModel):
    """Playback authorization handed to the client and checked by the media host.

    Serialized as ``{token, expires, videoId}``; the field names are part of
    the contract with the media host's player.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    token: str
    expires: int = Field(..., description="Expiry as Unix epoch seconds")
    video_id: str = Field(..., alias="videoId")


class SignedMediaResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    signed_url_params: SignedMediaToken = Field(..., alias="signedUrlParams")
    embed_url: Optional[str] = Field(None, alias="embedUrl")
