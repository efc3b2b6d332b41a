"""Image generation route."""
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from chathub.core.deps import get_current_user, get_image_service
from chathub.models.user import User
from chathub.schemas.image import ImageRequest, ImageResponse
from chathub.services.image_service import ImageService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["images"])


@router.post("/generate-image", response_model=ImageResponse)
def generate_image(
    request: ImageRequest,
    user: User = Depends(get_current_user),
    image_service: ImageService = Depends(get_image_service),
) -> ImageResponse:
    """
    Generate an image and return it inline as a data URL.

    Raises:
        HTTPException: 400 if prompt is empty
        HTTPException: 500 on any vendor failure
    """
    if not request.prompt.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Prompt is required",
        )

    try:
        image_url = image_service.generate(request.prompt)
    except Exception as e:
        logger.error(f"Image generation failed for user {user.id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate image",
        )

    return ImageResponse(image_url=image_url)
