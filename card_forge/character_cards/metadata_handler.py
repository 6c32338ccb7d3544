"""
PNG Metadata Handler
===================

Handles tEXt chunk payloads and the base64 transport used for character card
JSON embedded in PNG images.
"""

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from .exceptions import TextDecodeFailed, TextEncodeFailed
from .png_chunks import Chunk, TEXT

logger = logging.getLogger(__name__)

# atob() skips ASCII whitespace anywhere in its input
_BASE64_WHITESPACE = re.compile(r"[\t\n\f\r ]+")
_BASE64_BODY = re.compile(r"[A-Za-z0-9+/]*")


@dataclass(frozen=True)
class TextChunk:
    """Decoded tEXt payload."""
    keyword: str
    text: str


class PNGMetadataHandler:
    """Handle PNG tEXt chunk operations for character card metadata."""

    @staticmethod
    def encode_text_chunk(keyword: str, text: str) -> Chunk:
        """
        Build a tEXt chunk holding ``keyword`` and ``text``.

        Args:
            keyword: tEXt keyword (e.g., 'chara', 'ccv3')
            text: Text value, must be Latin-1 encodable

        Returns:
            Chunk of type tEXt with payload ``keyword + NUL + text``

        Raises:
            ValueError: If the keyword is empty, contains NUL, or either
                value is not Latin-1 encodable
        """
        if not keyword:
            raise ValueError("tEXt keyword must not be empty")
        if "\x00" in keyword:
            raise ValueError("tEXt keyword must not contain NUL")
        try:
            payload = keyword.encode("latin-1") + b"\x00" + text.encode("latin-1")
        except UnicodeEncodeError as e:
            raise ValueError(f"tEXt chunk values must be Latin-1 text: {e}")
        return Chunk(TEXT, payload)

    @staticmethod
    def decode_text_chunk(chunk: Chunk) -> TextChunk:
        """
        Split a tEXt chunk payload on its first NUL byte.

        Raises:
            TextDecodeFailed: If the payload has no NUL separator
        """
        keyword, sep, text = bytes(chunk.data).partition(b"\x00")
        if not sep:
            raise TextDecodeFailed(f"{chunk.type} chunk has no keyword separator")
        return TextChunk(keyword.decode("latin-1"), text.decode("latin-1"))

    @staticmethod
    def encode_card_text(json_text: str) -> str:
        """
        Encode card JSON as UTF-8, then base64.

        Raises:
            TextEncodeFailed: If the text holds characters UTF-8 cannot encode
        """
        try:
            raw = json_text.encode("utf-8")
        except UnicodeEncodeError as e:
            raise TextEncodeFailed(f"Card text is not encodable as UTF-8: {e}") from e
        return base64.b64encode(raw).decode("ascii")

    @staticmethod
    def decode_card_text(encoded: str) -> str:
        """
        Decode base64 card text back to a UTF-8 string.

        Whitespace and missing padding are tolerated.

        Raises:
            TextDecodeFailed: If the text is not base64 or the bytes are not UTF-8
        """
        cleaned = _BASE64_WHITESPACE.sub("", encoded)
        if len(cleaned) % 4 == 0 and cleaned.endswith("="):
            cleaned = cleaned[:-2] if cleaned.endswith("==") else cleaned[:-1]
        if len(cleaned) % 4 == 1 or not _BASE64_BODY.fullmatch(cleaned):
            raise TextDecodeFailed("Card text is not valid base64")

        try:
            raw = base64.b64decode(cleaned + "=" * (-len(cleaned) % 4), validate=True)
        except binascii.Error as e:
            raise TextDecodeFailed(f"Card text is not valid base64: {e}")

        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise TextDecodeFailed(f"Card text is not valid UTF-8: {e}")

    @classmethod
    def find_text(cls, chunks: List[Chunk], keyword: str) -> Optional[str]:
        """
        Return the text of the first tEXt chunk with exactly ``keyword``.

        Chunks whose payload cannot be split are skipped.
        """
        for chunk in chunks:
            if chunk.type != TEXT:
                continue
            try:
                decoded = cls.decode_text_chunk(chunk)
            except TextDecodeFailed as e:
                logger.debug(f"Skipping unreadable tEXt chunk: {e}")
                continue
            if decoded.keyword == keyword:
                logger.debug(f"Found tEXt chunk with keyword '{keyword}'")
                return decoded.text
        return None

    @classmethod
    def has_keyword(cls, chunk: Chunk, keywords) -> bool:
        """
        Check whether a chunk is a tEXt chunk keyed by one of ``keywords``.

        Chunks that fail to decode never match.
        """
        if chunk.type != TEXT:
            return False
        try:
            return cls.decode_text_chunk(chunk).keyword in keywords
        except TextDecodeFailed:
            return False

    @staticmethod
    def extract_image(png_path: Union[str, Path]) -> bytes:
        """
        Load PNG image data from file.

        Args:
            png_path: Path to PNG file

        Returns:
            PNG file data as bytes
        """
        try:
            with open(png_path, 'rb') as f:
                return f.read()
        except Exception as e:
            logger.error(f"Error reading PNG file '{png_path}': {e}")
            raise

    @staticmethod
    def save_image(png_data: bytes, output_path: Union[str, Path]) -> None:
        """
        Save PNG data to file.

        Args:
            png_data: PNG file data as bytes
            output_path: Path to save PNG file
        """
        try:
            with open(output_path, 'wb') as f:
                f.write(png_data)
        except Exception as e:
            logger.error(f"Error saving PNG file to '{output_path}': {e}")
            raise
