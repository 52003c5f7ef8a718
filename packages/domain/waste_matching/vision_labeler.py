"""
Vision Labeler - Turn a photo into candidate labels with Claude

This is the external vision collaborator the matching engine consumes. It
only produces {description, confidence, material} labels; everything else
(catalog matching, categorization) happens in the engine.

Labels below the minimum score are dropped, the rest are sorted by score
and capped (default: >= 0.3, top 10).
"""
import base64
import json
import re
from typing import List, Optional

import anthropic
import structlog
from pydantic import ValidationError

from packages.common.config import Settings, get_settings
from packages.domain.waste_matching.schemas import CandidateLabel

logger = structlog.get_logger()


class VisionUnavailableError(Exception):
    """Raised when the vision collaborator is not configured or fails"""
    pass


LABEL_PROMPT = """Analyze this image and identify the objects in it, focusing on waste items,
recyclables and household objects.

For each object return its name, your confidence between 0 and 1, and the main
material it is made of if you can tell (e.g. "soft plastic", "hard plastic",
"cardboard", "glass", "aluminium", "electronics", "battery", "textile", "food").

RESPONSE FORMAT (return ONLY this JSON list, no other text):
[{"description": "object name", "score": 0.95, "material": "material or null"}]

Keep descriptions simple and in English. Put the most likely object first."""


class VisionLabeler:
    """
    Claude-backed image labeling.

    Usage:
        labeler = VisionLabeler()
        labels = await labeler.label_image(image_bytes, media_type="image/jpeg")
    """

    def __init__(self, settings: Optional[Settings] = None, client: Optional[anthropic.AsyncAnthropic] = None):
        """
        Initialize vision labeler.

        Args:
            settings: Application settings (API key, model, score filters)
            client: Pre-built Anthropic client (tests)
        """
        self.settings = settings or get_settings()
        self.client = client
        if self.client is None and self.settings.anthropic_api_key:
            self.client = anthropic.AsyncAnthropic(api_key=self.settings.anthropic_api_key)
        if self.client is None:
            logger.warning("anthropic_api_key_missing",
                           message="ANTHROPIC_API_KEY not set, image labeling will fail")

    async def label_image(self, image: bytes, media_type: str = "image/jpeg") -> List[CandidateLabel]:
        """
        Ask Claude what is in the image.

        Args:
            image: Raw image bytes
            media_type: MIME type of the image

        Returns:
            Candidate labels, highest score first

        Raises:
            VisionUnavailableError: If the client is missing or the call fails
        """
        if self.client is None:
            raise VisionUnavailableError("Vision labeling is not configured (ANTHROPIC_API_KEY missing)")

        try:
            response = await self.client.messages.create(
                model=self.settings.vision_model,
                max_tokens=1000,
                temperature=0.1,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "image",
                                "source": {
                                    "type": "base64",
                                    "media_type": media_type,
                                    "data": base64.b64encode(image).decode("ascii"),
                                },
                            },
                            {"type": "text", "text": LABEL_PROMPT},
                        ],
                    }
                ],
            )
        except anthropic.APIError as e:
            logger.error("vision_labeling_failed", error=str(e), exc_info=True)
            raise VisionUnavailableError(f"Vision labeling failed: {e}") from e

        logger.info("vision_labeling_complete",
                    input_tokens=response.usage.input_tokens,
                    output_tokens=response.usage.output_tokens)

        return self.parse_labels(response.content[0].text)

    def parse_labels(self, response_text: str) -> List[CandidateLabel]:
        """
        Parse the model's JSON list into filtered, sorted labels.

        Tolerates markdown fences and prose around the list. Unparseable
        responses produce an empty list.
        """
        if "```json" in response_text:
            response_text = response_text.split("```json")[1].split("```")[0].strip()
        elif "```" in response_text:
            response_text = response_text.split("```")[1].split("```")[0].strip()

        match = re.search(r"\[.*\]", response_text, re.DOTALL)
        if not match:
            logger.error("vision_response_not_a_list", response=response_text[:500])
            return []

        try:
            items = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            logger.error("vision_response_parse_failed", response=response_text[:500], error=str(e))
            return []

        labels = []
        for item in items:
            if not isinstance(item, dict):
                continue
            try:
                label = CandidateLabel.from_vision(item)
            except ValidationError as e:
                logger.warning("vision_label_invalid", item=item, error=str(e))
                continue
            if label.description and label.confidence >= self.settings.vision_min_score:
                labels.append(label)

        labels.sort(key=lambda l: l.confidence, reverse=True)
        labels = labels[:self.settings.vision_max_labels]

        logger.info("vision_labels_parsed", count=len(labels))
        return labels
