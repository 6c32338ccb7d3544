"""
Card Format Detector
===================

Classifies decoded card JSON as V1, V2 or V3.
"""

import json
import logging
from typing import Any, Dict

from .exceptions import TextDecodeFailed
from .models import CARD_SCHEMAS, SpecVersion

logger = logging.getLogger(__name__)


class FormatDetector:
    """Detect character card spec version from decoded JSON."""

    V3_DATA_MARKERS = ("group_only_greetings", "assets")
    V2_DATA_MARKERS = ("creator_notes", "system_prompt")

    @staticmethod
    def is_spec_marker(value: Any, version: SpecVersion) -> bool:
        """
        True only for a plain ``str`` equal to the version's spec marker.

        Lookalike objects (str subclasses, objects whose ``str()`` matches)
        never count.
        """
        return type(value) is str and value == CARD_SCHEMAS[version].spec

    @classmethod
    def detect(cls, card: Any) -> SpecVersion:
        """
        Detect card version. Rules are checked in order, first match wins.

        Args:
            card: Parsed JSON value

        Returns:
            SpecVersion of the card; V1 when nothing else matches
        """
        if not isinstance(card, dict):
            return SpecVersion.V1

        spec = card.get("spec")
        if cls.is_spec_marker(spec, SpecVersion.V3):
            return SpecVersion.V3
        if cls.is_spec_marker(spec, SpecVersion.V2):
            return SpecVersion.V2

        # Wrapped data without a spec marker
        data = card.get("data")
        if isinstance(data, dict):
            if any(key in data for key in cls.V3_DATA_MARKERS):
                return SpecVersion.V3
            if any(key in data for key in cls.V2_DATA_MARKERS):
                return SpecVersion.V2

        return SpecVersion.V1

    @staticmethod
    def parse_card_json(text: str) -> Dict[str, Any]:
        """
        Parse card JSON text.

        Raises:
            TextDecodeFailed: If the text is not JSON or its root is not an object
        """
        try:
            parsed = json.loads(text)
        # ValueError also covers integers over the interpreter's digit limit
        except (ValueError, RecursionError) as e:
            raise TextDecodeFailed(f"Card text is not valid JSON: {e}") from e

        if not isinstance(parsed, dict):
            raise TextDecodeFailed(f"Card JSON root is {type(parsed).__name__}, expected an object")
        return parsed

    @classmethod
    def get_format_name(cls, version: SpecVersion) -> str:
        """Get human-readable format name."""
        return CARD_SCHEMAS[SpecVersion(version)].label
