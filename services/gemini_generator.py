"""
Gemini Image Generation Service

Composites the two uploaded people into one image using Gemini's image model.
"""

import os

import structlog
from google import genai
from google.genai import types

from .errors import GenerationError
from .utils import decode_base64, encode_base64

logger = structlog.get_logger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash-image"

NO_IMAGE_MESSAGE = "No image was generated in the API response."


def get_api_key(api_key=None):
    """
    Resolve the Google API key.

    Raises:
        GenerationError: If no key is configured
    """
    if api_key:
        return api_key

    api_key = os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY")
    if not api_key:
        raise GenerationError("GOOGLE_API_KEY not found in environment variables")
    return api_key


def build_contents(base64_img1, mime_type1, base64_img2, mime_type2, prompt):
    """Two inline image parts followed by the text instruction"""
    parts = [
        types.Part.from_bytes(data=decode_base64(base64_img1), mime_type=mime_type1),
        types.Part.from_bytes(data=decode_base64(base64_img2), mime_type=mime_type2),
        types.Part.from_text(text=prompt),
    ]
    return [types.Content(role="user", parts=parts)]


def extract_first_image(response):
    """
    Find the first part carrying inline image data.

    Args:
        response: GenerateContentResponse

    Returns:
        str: Base64 image payload, or None when no part has image data
    """
    candidates = getattr(response, "candidates", None) or []
    if not candidates or candidates[0].content is None:
        return None

    for part in candidates[0].content.parts or []:
        if part.inline_data and part.inline_data.data:
            return encode_base64(part.inline_data.data)

    return None


def generate_edited_image(base64_img1, mime_type1, base64_img2, mime_type2, prompt,
                          api_key=None, client=None, model=None):
    """
    Ask Gemini for a single image of both people.

    Inputs are not re-validated here; callers make sure both payloads and
    media types are present.

    Args:
        base64_img1: Base64 payload of the first photo
        mime_type1: Media type of the first photo
        base64_img2: Base64 payload of the second photo
        mime_type2: Media type of the second photo
        prompt: Instruction text
        api_key: Google API key (optional, reads from env)
        client: Preconfigured genai.Client (optional)
        model: Model name (optional, defaults to GEMINI_MODEL or gemini-2.5-flash-image)

    Returns:
        str: Base64 payload of the generated image

    Raises:
        GenerationError: On transport/service failure or when no image is returned
    """
    model = model or os.getenv("GEMINI_MODEL", DEFAULT_MODEL)

    try:
        if client is None:
            client = genai.Client(api_key=get_api_key(api_key))

        contents = build_contents(base64_img1, mime_type1, base64_img2, mime_type2, prompt)

        # Image-only output
        generate_content_config = types.GenerateContentConfig(
            response_modalities=["IMAGE"],
        )

        logger.info("Requesting image from Gemini", model=model, prompt_chars=len(prompt))

        response = client.models.generate_content(
            model=model,
            contents=contents,
            config=generate_content_config,
        )
    except GenerationError:
        raise
    except Exception as e:
        logger.error("Error calling Gemini API", error=str(e))
        raise GenerationError(f"API Error: {e}") from e

    image_data = extract_first_image(response)
    if image_data is None:
        logger.warning("Gemini response contained no image part", model=model)
        raise GenerationError(f"API Error: {NO_IMAGE_MESSAGE}")

    logger.info("Image generated", model=model, payload_chars=len(image_data))
    return image_data
