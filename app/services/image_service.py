"""
app/services/image_service.py

Purpose: Avatar hosting on Cloudinary

- Uploads inline image data under the fixed avatar folder/transform
- Destroys previously hosted images by public id
- Signs every request with the account's API secret
"""

import hashlib
import time
from typing import Any, Dict, Optional

import httpx

from app.core.config import Settings
from app.core.exceptions import ImageServiceError
from app.core.logging import get_logger
from app.models.user import Avatar

logger = get_logger(__name__)


class ImageService:
    """Service for storing avatars on the image host"""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.cloud_name = settings.CLOUDINARY_CLOUD_NAME
        self.api_key = settings.CLOUDINARY_API_KEY
        self.api_secret = settings.CLOUDINARY_API_SECRET
        self.base_url = f"{settings.CLOUDINARY_BASE_URL}/{self.cloud_name}/image"
        self.folder = settings.AVATAR_FOLDER
        self.transformation = f"c_{settings.AVATAR_CROP},w_{settings.AVATAR_WIDTH}"
        self.timeout = settings.IMAGE_SERVICE_TIMEOUT
        self._transport = transport

    def is_configured(self) -> bool:
        """Check if the image host credentials are present"""
        return bool(self.cloud_name and self.api_key and self.api_secret)

    def sign(self, params: Dict[str, Any]) -> str:
        """
        Builds the request signature: SHA-1 of the alphabetically sorted
        "key=value" pairs joined by "&", followed by the API secret.
        """
        to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params))
        return hashlib.sha1(f"{to_sign}{self.api_secret}".encode("utf-8")).hexdigest()

    def _signed(self, params: Dict[str, Any]) -> Dict[str, Any]:
        params = {**params, "timestamp": int(time.time())}
        return {**params, "signature": self.sign(params), "api_key": self.api_key}

    async def _post(self, action: str, data: Dict[str, Any]) -> Dict[str, Any]:
        if not self.is_configured():
            raise ImageServiceError("Image host is not configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(f"{self.base_url}/{action}", data=data)
        except httpx.TimeoutException as exc:
            logger.error(f"Image host timeout during {action}")
            raise ImageServiceError("Image host timeout") from exc
        except httpx.RequestError as exc:
            logger.error(f"Network error calling image host: {exc}")
            raise ImageServiceError("Network error connecting to image host") from exc

        if response.status_code != 200:
            try:
                detail = response.json().get("error", {}).get("message", response.text)
            except ValueError:
                detail = response.text
            logger.error(f"Image host API error: {response.status_code} - {detail}")
            raise ImageServiceError(f"Image host error: {detail}")

        return response.json()

    async def upload_avatar(self, image_data: str) -> Avatar:
        """
        Uploads an avatar.

        Args:
            image_data: Inline image (data:image/...;base64,...)

        Returns:
            Avatar reference (public_id, secure url)
        """
        data = self._signed({"folder": self.folder, "transformation": self.transformation})
        data["file"] = image_data

        result = await self._post("upload", data)
        avatar = Avatar(public_id=result["public_id"], url=result["secure_url"])
        logger.info("Avatar uploaded", extra={"public_id": avatar.public_id})
        return avatar

    async def destroy(self, public_id: str) -> bool:
        """
        Deletes a hosted image.

        Returns:
            True if the host removed it, False if it was already gone
        """
        result = await self._post("destroy", self._signed({"public_id": public_id}))
        removed = result.get("result") == "ok"
        if removed:
            logger.info("Avatar destroyed", extra={"public_id": public_id})
        else:
            logger.warning(
                f"Image host did not remove image: {result.get('result')}",
                extra={"public_id": public_id}
            )
        return removed
