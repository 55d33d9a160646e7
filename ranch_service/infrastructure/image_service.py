"""
Infrastructure layer: ranch photo processing.

The core never reads image bytes. It hands an uploaded file path to the
image service and stores the URL it gets back.
"""
from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import quote

import httpx
from pydantic import BaseModel

from ranch_service.config import settings
from ranch_service.domain.errors import ImageProcessingError
from ranch_service.infrastructure.api_constants import APIConstants, ImageAPIEndpoints


class ProcessedImageResponse(BaseModel):
    """Response from the image processing endpoint."""
    url: str


class ImageService(ABC):
    """Image processing interface consumed by the ranch core."""

    @abstractmethod
    async def process_image(self, upload_path: str) -> str:
        """
        Process an uploaded image and return its public URL.

        Raises:
            ImageProcessingError: If processing fails
        """

    @abstractmethod
    def file_url(self, upload_path: str) -> str:
        """Public URL of the unprocessed upload."""

    async def close(self) -> None:
        """Release service resources."""


class HttpImageService(ImageService):
    """ImageService backed by an HTTP image processing service."""

    def __init__(self, base_url: Optional[str] = None):
        self.base_url = (base_url or settings.image_service_base_url).rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"accept": APIConstants.CONTENT_TYPE_JSON},
            timeout=settings.persistence_timeout_seconds,
        )

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def process_image(self, upload_path: str) -> str:
        try:
            response = await self.client.post(
                ImageAPIEndpoints.PROCESS, json={"path": upload_path}
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ImageProcessingError(
                f"Image processing failed: {e.response.status_code} - {e.response.text}"
            )
        except httpx.RequestError as e:
            raise ImageProcessingError(f"Image service error: {str(e)}")
        return ProcessedImageResponse(**response.json()).url

    def file_url(self, upload_path: str) -> str:
        path = quote(upload_path.lstrip("/"))
        return f"{self.base_url}{ImageAPIEndpoints.FILES.format(path=path)}"


# Singleton instance
_image_service: Optional[ImageService] = None


def get_image_service() -> ImageService:
    """
    Get or create the singleton image service instance.

    Returns:
        ImageService instance
    """
    global _image_service
    if _image_service is None:
        _image_service = HttpImageService()
    return _image_service
