"""
Character Card Exporter
======================

Embed character cards into PNG images and serialize them as JSON.
"""

import json
import logging
from typing import Optional

from .card_converter import CardConverter
from .exceptions import CardCodecError, TextEncodeFailed
from .metadata_handler import PNGMetadataHandler
from .models import CARD_KEYWORDS, CARD_SCHEMAS, CharacterCardData, SpecVersion
from .placeholder import create_placeholder_image
from .png_chunks import IEND, find_chunk, parse_chunks, write_chunks

logger = logging.getLogger(__name__)


class CharacterCardExporter:
    """Export CharacterCardData as PNG character cards or JSON files."""

    @staticmethod
    def embed(png_data: bytes, card_data: CharacterCardData, version: SpecVersion) -> bytes:
        """
        Embed a card into PNG data, replacing any card already embedded.

        Every tEXt chunk keyed ``chara`` or ``ccv3`` is removed; tEXt chunks
        that cannot be decoded are kept. The new chunk goes right before the
        first IEND, or at the end when there is none.

        Args:
            png_data: Original PNG file data as bytes
            card_data: Card to embed (not modified)
            version: Wire format to write

        Returns:
            New PNG data with the card embedded

        Raises:
            StreamMalformed: If the PNG cannot be parsed
            TextEncodeFailed: If the card holds text UTF-8 cannot encode
        """
        version = SpecVersion(version)
        try:
            chunks = parse_chunks(png_data)
        except CardCodecError as e:
            logger.error(f"Error exporting card: {e}")
            raise

        kept = [
            chunk for chunk in chunks
            if not PNGMetadataHandler.has_keyword(chunk, CARD_KEYWORDS)
        ]
        if len(kept) != len(chunks):
            logger.debug(f"Removed {len(chunks) - len(kept)} existing card chunk(s)")

        card_json = json.dumps(CardConverter.project(card_data, version), ensure_ascii=False)
        keyword = CARD_SCHEMAS[version].keyword
        card_chunk = PNGMetadataHandler.encode_text_chunk(
            keyword,
            PNGMetadataHandler.encode_card_text(card_json),
        )

        iend_index = find_chunk(kept, IEND)
        if iend_index is None:
            kept.append(card_chunk)
        else:
            kept.insert(iend_index, card_chunk)

        logger.info(f"Embedded '{card_data.name}' as {version.value} in '{keyword}' chunk")
        return write_chunks(kept)

    @staticmethod
    def to_json(card_data: CharacterCardData, version: SpecVersion, indent: Optional[int] = 2) -> str:
        """
        Serialize the card projected to ``version`` as JSON text.

        Raises:
            TextEncodeFailed: If the card holds text UTF-8 cannot encode
        """
        text = json.dumps(CardConverter.project(card_data, version), indent=indent, ensure_ascii=False)
        try:
            text.encode("utf-8")
        except UnicodeEncodeError as e:
            logger.error(f"Error exporting card JSON: {e}")
            raise TextEncodeFailed(f"Card text is not encodable as UTF-8: {e}") from e
        return text

    @classmethod
    def export_png(
        cls,
        card_data: CharacterCardData,
        version: SpecVersion,
        image: Optional[bytes] = None,
        placeholder_size: tuple = (400, 600)
    ) -> bytes:
        """
        Export the card as a PNG.

        Args:
            card_data: Card to export
            version: Wire format to write
            image: PNG to embed into; a placeholder image is generated if None
            placeholder_size: (width, height) of the generated placeholder

        Returns:
            PNG data with the card embedded
        """
        if image is None:
            logger.debug("No image supplied, using placeholder")
            image = create_placeholder_image(*placeholder_size)
        return cls.embed(image, card_data, version)
