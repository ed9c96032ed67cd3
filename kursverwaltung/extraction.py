"""
Photo extraction: turn a photographed form into a loose field map.

The vision model is asked for a JSON object shaped like the schema text
it is given; nothing guarantees it complies, so callers decode the result
with ``schema.coerce_extracted``.
"""

import base64
import json
import mimetypes
from pathlib import Path
from typing import Any, Dict, Optional

from openai import OpenAI, OpenAIError

from .config import get_config
from .errors import ExtractionError
from .logger import get_logger

logger = get_logger()

SYSTEM_PROMPT = (
    "Du liest Daten aus Fotos von Formularen, Listen und Dokumenten aus. "
    "Antworte ausschließlich mit einem JSON-Objekt im vorgegebenen Schema. "
    "Felder, die auf dem Foto nicht erkennbar sind, setzt du auf null."
)


def file_to_data_uri(path: Path) -> str:
    """Read an image file and encode it as a base64 data URI."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Image not found: {path}")
    mime, _ = mimetypes.guess_type(path.name)
    if not mime or not mime.startswith("image/"):
        mime = "image/jpeg"
    data = base64.b64encode(path.read_bytes()).decode("ascii")
    return f"data:{mime};base64,{data}"


class PhotoExtractor:
    """Extracts form fields from a photo with an OpenAI vision model."""

    def __init__(self, client: Optional[OpenAI] = None, model: Optional[str] = None):
        settings = get_config()
        if client is None:
            if not settings.openai_api_key:
                raise ExtractionError("OPENAI_API_KEY not set. Photo scan unavailable.")
            client = OpenAI(api_key=settings.openai_api_key)
        self.client = client
        self.model = model or settings.vision_model

    def extract_from_photo(self, image_data_uri: str, schema_description: str) -> Dict[str, Any]:
        """
        Send the image and schema text to the model and decode its JSON answer.

        Raises:
            ExtractionError: On service errors or when the answer is not a JSON object
        """
        logger.debug("Requesting photo extraction", model=self.model, image_bytes=len(image_data_uri))
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": f"Schema:\n{schema_description}"},
                            {"type": "image_url", "image_url": {"url": image_data_uri}},
                        ],
                    },
                ],
                response_format={"type": "json_object"},
                temperature=0,
            )
        except OpenAIError as e:
            raise ExtractionError(f"Extraction service failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ExtractionError("Extraction service returned an empty answer")
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ExtractionError(f"Extraction answer is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ExtractionError("Extraction answer is not a JSON object")
        return data
