"""
Character Card Importer
======================

Read character cards from PNG images and JSON files.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from .card_converter import CardConverter
from .exceptions import CardImportError, CardCodecError
from .format_detector import FormatDetector
from .metadata_handler import PNGMetadataHandler
from .models import (
    CCV3_KEYWORD,
    CHARA_KEYWORD,
    CardImportResult,
    ExtractedCard,
    SpecVersion,
)
from .png_chunks import parse_chunks

logger = logging.getLogger(__name__)

NO_CARD_DATA = "No character data found"


class CharacterCardImporter:
    """Import character cards from PNG or JSON data."""

    @staticmethod
    def extract(png_data: bytes) -> Optional[ExtractedCard]:
        """
        Extract the embedded card from PNG data.

        A ``ccv3`` tEXt chunk anywhere in the stream wins over ``chara``.
        Cards from ``chara`` are tagged V2 when the format detector says so,
        otherwise V1.

        Args:
            png_data: PNG file data as bytes

        Returns:
            ExtractedCard, or None if no readable card is embedded. Malformed
            streams, bad base64, bad UTF-8 and bad JSON all return None.
        """
        try:
            chunks = parse_chunks(png_data)
        except CardCodecError as e:
            logger.debug(f"Cannot read PNG chunks: {e}")
            return None

        try:
            v3_text = PNGMetadataHandler.find_text(chunks, CCV3_KEYWORD)
            if v3_text is not None:
                card = FormatDetector.parse_card_json(PNGMetadataHandler.decode_card_text(v3_text))
                logger.info(f"Found '{CCV3_KEYWORD}' card data")
                return ExtractedCard(card=card, detected_version=SpecVersion.V3)

            chara_text = PNGMetadataHandler.find_text(chunks, CHARA_KEYWORD)
            if chara_text is not None:
                card = FormatDetector.parse_card_json(PNGMetadataHandler.decode_card_text(chara_text))
                # chara only carries V1 or V2; anything not detected as V2 is V1
                version = SpecVersion.V2 if FormatDetector.detect(card) == SpecVersion.V2 else SpecVersion.V1
                logger.info(f"Found '{CHARA_KEYWORD}' card data ({FormatDetector.get_format_name(version)})")
                return ExtractedCard(card=card, detected_version=version)
        except CardCodecError as e:
            logger.warning(f"Embedded card data could not be decoded: {e}")
            return None

        logger.debug("No character card metadata found in PNG")
        return None

    @classmethod
    def import_png(cls, png_data: bytes) -> CardImportResult:
        """
        Extract and lift the card embedded in a PNG.

        Raises:
            CardImportError: If the PNG carries no readable card
        """
        extracted = cls.extract(png_data)
        if extracted is None:
            raise CardImportError(NO_CARD_DATA)

        warnings = []
        card_data = CardConverter.to_editor_data(extracted.card, warnings)
        return CardImportResult(
            card_data=card_data,
            version=extracted.detected_version,
            image=bytes(png_data),
            warnings=warnings,
        )

    @staticmethod
    def import_json(text: str) -> CardImportResult:
        """
        Parse a JSON card file, detect its version and lift it.

        Raises:
            CardImportError: If the text is not a JSON object
        """
        try:
            card = FormatDetector.parse_card_json(text)
        except CardCodecError as e:
            raise CardImportError(str(e)) from e

        version = FormatDetector.detect(card)
        warnings = []
        card_data = CardConverter.to_editor_data(card, warnings)
        logger.info(f"Imported JSON card ({FormatDetector.get_format_name(version)})")
        return CardImportResult(card_data=card_data, version=version, warnings=warnings)

    @classmethod
    def import_file(cls, path: Union[str, Path]) -> CardImportResult:
        """
        Import a ``.json`` card file or a PNG card image.

        Raises:
            CardImportError: If the file holds no readable card
        """
        path = Path(path)
        if path.suffix.lower() == ".json":
            return cls.import_json(path.read_text(encoding="utf-8"))
        return cls.import_png(PNGMetadataHandler.extract_image(path))
