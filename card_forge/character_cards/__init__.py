"""
Character Card Codec
====================

Character cards embedded in PNG images as base64-encoded JSON in tEXt chunks.

Supports:
- Tavern Card V1 (flat JSON, 'chara' chunk)
- Character Card V2 (chara_card_v2, 'chara' chunk)
- Character Card V3 (chara_card_v3, 'ccv3' chunk)
"""

from .card_converter import CardConverter
from .card_exporter import CharacterCardExporter
from .card_importer import CharacterCardImporter, NO_CARD_DATA
from .exceptions import (
    CardCodecError,
    CardImportError,
    StreamMalformed,
    TextDecodeFailed,
    TextEncodeFailed,
)
from .format_detector import FormatDetector
from .metadata_handler import PNGMetadataHandler, TextChunk
from .models import (
    CARD_SCHEMAS,
    CardImportResult,
    CharacterAsset,
    CharacterBook,
    CharacterBookEntry,
    CharacterCardData,
    ExtractedCard,
    SpecVersion,
    create_empty_asset,
    create_empty_book_entry,
    create_empty_card_data,
    next_entry_id,
)
from .placeholder import create_placeholder_image
from .png_chunks import Chunk, PNG_SIGNATURE, parse_chunks, write_chunks

__all__ = [
    'CardConverter',
    'CharacterCardExporter',
    'CharacterCardImporter',
    'NO_CARD_DATA',
    'CardCodecError',
    'CardImportError',
    'StreamMalformed',
    'TextDecodeFailed',
    'TextEncodeFailed',
    'FormatDetector',
    'PNGMetadataHandler',
    'TextChunk',
    'CARD_SCHEMAS',
    'CardImportResult',
    'CharacterAsset',
    'CharacterBook',
    'CharacterBookEntry',
    'CharacterCardData',
    'ExtractedCard',
    'SpecVersion',
    'create_empty_asset',
    'create_empty_book_entry',
    'create_empty_card_data',
    'next_entry_id',
    'create_placeholder_image',
    'Chunk',
    'PNG_SIGNATURE',
    'parse_chunks',
    'write_chunks',
]
