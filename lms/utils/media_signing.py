# lms/utils/media_signing.py
"""
Playback tokens for the media host.

token = HMAC-SHA256(key, key + media_id + expires), hex encoded.

The media host recomputes the same digest to authorize playback, so the
message layout, the digest and the hex encoding are a wire format: changing
any of them breaks every player already in the field.
"""

import hashlib
import hmac
import logging
import time
from typing import Callable, Optional

from lms.core.config import settings
from lms.core.exceptions import ConfigurationError
from lms.schemas.media import SignedMediaToken

logger = logging.getLogger(__name__)


class SignedMediaUrlIssuer:
    """Mints short-lived playback tokens bound to one media id and one expiry."""

    def __init__(
        self,
        secret_key: Optional[str],
        default_ttl: int = 3600,
        library_id: str = "",
        embed_base_url: str = "",
        clock: Callable[[], float] = time.time,
    ):
        self.secret_key = secret_key
        self.default_ttl = default_ttl
        self.library_id = library_id
        self.embed_base_url = embed_base_url.rstrip("/")
        self.clock = clock

    @property
    def is_configured(self) -> bool:
        return bool(self.secret_key)

    def ensure_configured(self) -> None:
        """Raise ConfigurationError when no signing key is set."""
        if not self.secret_key:
            logger.error("Media signing key is missing (MEDIA_SIGNING_KEY)")
            raise ConfigurationError("Media signing key is not configured")

    def compute_token(self, media_id: str, expires: int) -> str:
        self.ensure_configured()
        key = self.secret_key.encode("utf-8")
        message = f"{self.secret_key}{media_id}{int(expires)}".encode("utf-8")
        return hmac.new(key, message, hashlib.sha256).hexdigest()

    def sign(
        self,
        media_id: str,
        ttl_seconds: Optional[int] = None,
        now: Optional[int] = None,
    ) -> SignedMediaToken:
        """
        Create a playback token valid for ``ttl_seconds`` from now.

        Always computed fresh: the digest binds key, media id and expiry,
        so a token can never be reused for another video or instant.
        """
        self.ensure_configured()

        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            raise ValueError("ttl_seconds must be positive")
        if not media_id:
            raise ValueError("media_id is required")

        issued_at = int(self.clock()) if now is None else int(now)
        expires = issued_at + int(ttl)

        return SignedMediaToken(
            token=self.compute_token(media_id, expires),
            expires=expires,
            video_id=media_id,
        )

    def verify(
        self,
        media_id: str,
        expires: int,
        token: str,
        now: Optional[int] = None,
    ) -> bool:
        """The check the media host performs before starting playback."""
        current = int(self.clock()) if now is None else int(now)
        if int(expires) <= current:
            return False
        expected = self.compute_token(media_id, expires)
        return hmac.compare_digest(expected.encode("ascii"), token.encode("utf-8"))

    def embed_url(
        self, signed: SignedMediaToken, library_id: Optional[str] = None
    ) -> Optional[str]:
        """Player URL carrying the token, when the media library is known."""
        library_id = library_id or self.library_id
        if not library_id or not self.embed_base_url:
            return None
        return (
            f"{self.embed_base_url}/{library_id}/{signed.video_id}"
            f"?token={signed.token}&expires={signed.expires}"
        )


media_url_issuer = SignedMediaUrlIssuer(
    secret_key=settings.media_signing_key,
    default_ttl=settings.media_token_ttl_seconds,
    library_id=settings.media_library_id,
    embed_base_url=settings.media_embed_base_url,
)
