"""
Tests for embedding cards into PNGs and extracting them again.

Tests cover:
- Chunk placement on embed
- ccv3 priority over chara on extract
- Replacement of existing card chunks
- Extract never raising on malformed input
- JSON and file import
"""

import base64
import json
import struct
from io import BytesIO

import pytest
from PIL import Image

from card_forge.character_cards import (
    CardConverter,
    CardImportError,
    CharacterCardData,
    CharacterCardExporter,
    CharacterCardImporter,
    Chunk,
    PNGMetadataHandler,
    SpecVersion,
    StreamMalformed,
    TextEncodeFailed,
    parse_chunks,
    write_chunks,
)
from card_forge.character_cards.png_chunks import PNG_SIGNATURE

from conftest import card_chunk

IHDR_PAYLOAD = struct.pack(">IIBBBBB", 1, 1, 8, 2, 0, 0, 0)

V1_CARD = {
    "name": "Legacy", "description": "Old card", "personality": "",
    "scenario": "", "first_mes": "Hi", "mes_example": "",
}

V2_CARD = {
    "spec": "chara_card_v2",
    "spec_version": "2.0",
    "data": dict(V1_CARD, name="Extended", creator_notes="notes", system_prompt="sys"),
}

V3_CARD = {
    "spec": "chara_card_v3",
    "spec_version": "3.0",
    "data": dict(V2_CARD["data"], name="Full", group_only_greetings=[]),
}


def with_chunks(*middle):
    return write_chunks([Chunk("IHDR", IHDR_PAYLOAD), *middle, Chunk("IEND")])


def card_keywords(png_data):
    keywords = []
    for chunk in parse_chunks(png_data):
        if chunk.type == "tEXt":
            keywords.append(PNGMetadataHandler.decode_text_chunk(chunk).keyword)
    return keywords


class TestEmbed:
    """Test suite for CharacterCardExporter.embed."""

    def test_inserted_before_iend(self):
        """[IHDR, IEND] becomes [IHDR, tEXt, IEND]."""
        png = write_chunks([Chunk("IHDR", IHDR_PAYLOAD), Chunk("IEND")])
        result = CharacterCardExporter.embed(png, CharacterCardData(name="A"), SpecVersion.V2)

        assert [chunk.type for chunk in parse_chunks(result)] == ["IHDR", "tEXt", "IEND"]

    def test_appended_without_iend(self):
        png = write_chunks([Chunk("IHDR", IHDR_PAYLOAD), Chunk("IDAT", b"\x00")])
        result = CharacterCardExporter.embed(png, CharacterCardData(name="A"), SpecVersion.V1)

        assert [chunk.type for chunk in parse_chunks(result)] == ["IHDR", "IDAT", "tEXt"]

    def test_inserted_before_first_iend(self):
        png = write_chunks([Chunk("IHDR", IHDR_PAYLOAD), Chunk("IEND"), Chunk("IEND")])
        result = CharacterCardExporter.embed(png, CharacterCardData(name="A"), SpecVersion.V1)

        assert [chunk.type for chunk in parse_chunks(result)] == ["IHDR", "tEXt", "IEND", "IEND"]

    @pytest.mark.parametrize("version, keyword", [
        (SpecVersion.V1, "chara"),
        (SpecVersion.V2, "chara"),
        (SpecVersion.V3, "ccv3"),
    ])
    def test_keyword_per_version(self, png_bytes, version, keyword):
        result = CharacterCardExporter.embed(png_bytes, CharacterCardData(name="A"), version)
        assert card_keywords(result) == [keyword]

    def test_payload_is_base64_json(self, png_bytes, full_card):
        result = CharacterCardExporter.embed(png_bytes, full_card, SpecVersion.V3)
        text = PNGMetadataHandler.find_text(parse_chunks(result), "ccv3")

        assert json.loads(base64.b64decode(text).decode("utf-8")) == CardConverter.to_v3(full_card)

    def test_replaces_existing_card_chunks(self, png_bytes):
        """Old chara and ccv3 chunks are removed, other text is kept."""
        png = with_chunks(
            card_chunk("chara", V2_CARD),
            PNGMetadataHandler.encode_text_chunk("Comment", "keep me"),
            card_chunk("ccv3", V3_CARD),
        )
        result = CharacterCardExporter.embed(png, CharacterCardData(name="New"), SpecVersion.V2)

        assert card_keywords(result) == ["Comment", "chara"]
        assert CharacterCardImporter.extract(result).card["data"]["name"] == "New"

    def test_undecodable_text_chunk_kept(self):
        png = with_chunks(Chunk("tEXt", b"chara-without-separator"))
        result = CharacterCardExporter.embed(png, CharacterCardData(name="A"), SpecVersion.V3)

        chunks = parse_chunks(result)
        assert Chunk("tEXt", b"chara-without-separator") in chunks
        assert [chunk.type for chunk in chunks] == ["IHDR", "tEXt", "tEXt", "IEND"]

    def test_result_is_valid_png(self, png_bytes, full_card):
        """Pillow reads the image and the embedded text back."""
        result = CharacterCardExporter.embed(png_bytes, full_card, SpecVersion.V2)

        with Image.open(BytesIO(result)) as img:
            img.load()
            assert img.size == (8, 8)
            assert "chara" in img.text

    def test_does_not_mutate_card(self, png_bytes, full_card):
        before = full_card.model_copy(deep=True)
        CharacterCardExporter.embed(png_bytes, full_card, SpecVersion.V1)
        assert full_card == before

    @pytest.mark.parametrize("data", [b"", b"not a png", PNG_SIGNATURE + b"\x00\x00"])
    def test_malformed_stream_raises(self, data):
        with pytest.raises(StreamMalformed):
            CharacterCardExporter.embed(data, CharacterCardData(name="A"), SpecVersion.V2)

    def test_export_png_uses_placeholder(self, full_card):
        result = CharacterCardExporter.export_png(full_card, SpecVersion.V3, placeholder_size=(40, 60))

        with Image.open(BytesIO(result)) as img:
            assert img.size == (40, 60)
        assert CharacterCardImporter.extract(result).detected_version == SpecVersion.V3

    def test_to_json(self, full_card):
        text = CharacterCardExporter.to_json(full_card, SpecVersion.V2)

        assert text.startswith('{\n  "spec": "chara_card_v2"')
        assert json.loads(text) == CardConverter.to_v2(full_card)

    def test_lone_surrogate_is_codec_error(self, png_bytes):
        """A \\ud800 escape in imported JSON cannot be written out as UTF-8."""
        card = CardConverter.to_editor_data(json.loads('{"name": "\\ud800"}'))

        with pytest.raises(TextEncodeFailed):
            CharacterCardExporter.embed(png_bytes, card, SpecVersion.V1)
        with pytest.raises(TextEncodeFailed):
            CharacterCardExporter.to_json(card, SpecVersion.V2)


class TestExtract:
    """Test suite for CharacterCardImporter.extract."""

    def test_v1(self):
        extracted = CharacterCardImporter.extract(with_chunks(card_chunk("chara", V1_CARD)))

        assert extracted.detected_version == SpecVersion.V1
        assert extracted.card == V1_CARD

    def test_v2(self):
        extracted = CharacterCardImporter.extract(with_chunks(card_chunk("chara", V2_CARD)))
        assert extracted.detected_version == SpecVersion.V2

    def test_v3(self):
        extracted = CharacterCardImporter.extract(with_chunks(card_chunk("ccv3", V3_CARD)))

        assert extracted.detected_version == SpecVersion.V3
        assert extracted.card["data"]["name"] == "Full"

    @pytest.mark.parametrize("order", ["chara_first", "ccv3_first"])
    def test_ccv3_wins_regardless_of_order(self, order):
        chunks = [card_chunk("chara", V2_CARD), card_chunk("ccv3", V3_CARD)]
        if order == "ccv3_first":
            chunks.reverse()

        extracted = CharacterCardImporter.extract(with_chunks(*chunks))

        assert extracted.detected_version == SpecVersion.V3
        assert extracted.card == V3_CARD

    def test_ccv3_payload_tagged_v3(self):
        """Whatever sits in ccv3 is reported as V3."""
        extracted = CharacterCardImporter.extract(with_chunks(card_chunk("ccv3", V1_CARD)))
        assert extracted.detected_version == SpecVersion.V3

    def test_chara_payload_tagged_v1_or_v2(self):
        """A chara_card_v3 document under chara is tagged V1 but keeps its data."""
        png = with_chunks(card_chunk("chara", V3_CARD))

        extracted = CharacterCardImporter.extract(png)
        assert extracted.detected_version == SpecVersion.V1
        assert extracted.card == V3_CARD

        result = CharacterCardImporter.import_png(png)
        assert result.version == SpecVersion.V1
        assert result.card_data.name == "Full"

    def test_unicode_card(self):
        card = dict(V1_CARD, name="Ésme 🌙", description="日本語の説明")
        extracted = CharacterCardImporter.extract(with_chunks(card_chunk("chara", card)))
        assert extracted.card["name"] == "Ésme 🌙"

    def test_no_card(self, png_bytes):
        assert CharacterCardImporter.extract(png_bytes) is None

    def test_other_text_only(self):
        png = with_chunks(PNGMetadataHandler.encode_text_chunk("Software", "paint"))
        assert CharacterCardImporter.extract(png) is None

    @pytest.mark.parametrize("data", [
        b"",
        b"\x89PNG",
        b"GIF89a\x01\x00\x01\x00",
        PNG_SIGNATURE + struct.pack(">I", 99999) + b"tEXt",
        PNG_SIGNATURE + b"\x00\x00\x00\x05IHDR\x00",
    ])
    def test_malformed_stream_returns_none(self, data):
        assert CharacterCardImporter.extract(data) is None

    def test_truncated_card_png_returns_none(self, png_bytes):
        full = CharacterCardExporter.embed(png_bytes, CharacterCardData(name="A"), SpecVersion.V2)
        for cut in (1, 5, 13, len(full) // 2):
            assert CharacterCardImporter.extract(full[:-cut]) is None

    def test_bad_base64_returns_none(self):
        png = with_chunks(PNGMetadataHandler.encode_text_chunk("chara", "!!!not base64!!!"))
        assert CharacterCardImporter.extract(png) is None

    def test_bad_utf8_returns_none(self):
        text = base64.b64encode(b"\xff\xfe").decode("ascii")
        png = with_chunks(PNGMetadataHandler.encode_text_chunk("chara", text))
        assert CharacterCardImporter.extract(png) is None

    def test_bad_json_returns_none(self):
        text = base64.b64encode(b"{not json").decode("ascii")
        png = with_chunks(PNGMetadataHandler.encode_text_chunk("ccv3", text))
        assert CharacterCardImporter.extract(png) is None

    def test_oversized_integer_returns_none(self):
        text = base64.b64encode(('{"name": "A", "x": 1' + "0" * 5000 + "}").encode("utf-8")).decode("ascii")
        png = with_chunks(PNGMetadataHandler.encode_text_chunk("chara", text))
        assert CharacterCardImporter.extract(png) is None

    def test_skips_text_chunk_without_separator(self):
        png = with_chunks(Chunk("tEXt", b"ccv3"), card_chunk("chara", V2_CARD))
        assert CharacterCardImporter.extract(png).detected_version == SpecVersion.V2


class TestEmbedExtractRoundTrip:
    """Extract(Embed(img, d, v)) gives back Project(d, v)."""

    @pytest.mark.parametrize("version", list(SpecVersion))
    def test_round_trip(self, png_bytes, full_card, version):
        result = CharacterCardExporter.embed(png_bytes, full_card, version)
        extracted = CharacterCardImporter.extract(result)

        assert extracted.detected_version == version
        assert extracted.card == CardConverter.project(full_card, version)

        lifted = CardConverter.to_editor_data(extracted.card)
        assert lifted == CardConverter.to_editor_data(CardConverter.project(full_card, version))

    def test_re_embed_keeps_single_card(self, png_bytes, full_card):
        once = CharacterCardExporter.embed(png_bytes, full_card, SpecVersion.V3)
        twice = CharacterCardExporter.embed(once, full_card, SpecVersion.V2)

        assert card_keywords(twice) == ["chara"]
        assert CharacterCardImporter.extract(twice).detected_version == SpecVersion.V2


class TestImport:
    """Test suite for JSON / PNG / file import."""

    def test_import_json(self):
        result = CharacterCardImporter.import_json(json.dumps(V2_CARD))

        assert result.version == SpecVersion.V2
        assert result.card_data.system_prompt == "sys"
        assert result.image is None

    def test_import_json_unknown_spec(self):
        result = CharacterCardImporter.import_json(json.dumps({"spec": "chara_card_v99", "data": {}}))

        assert result.card_data == CharacterCardData()
        assert result.warnings

    @pytest.mark.parametrize("text", ["{broken", "[]", '{"x": 1' + "0" * 5000 + "}"])
    def test_import_json_invalid(self, text):
        with pytest.raises(CardImportError):
            CharacterCardImporter.import_json(text)

    def test_import_png(self, png_bytes, full_card):
        png = CharacterCardExporter.embed(png_bytes, full_card, SpecVersion.V3)
        result = CharacterCardImporter.import_png(png)

        assert result.version == SpecVersion.V3
        assert result.card_data == full_card
        assert result.image == png

    def test_import_png_without_card(self, png_bytes):
        with pytest.raises(CardImportError, match="No character data found"):
            CharacterCardImporter.import_png(png_bytes)

    def test_import_file(self, tmp_path, png_bytes):
        json_path = tmp_path / "card.JSON"
        json_path.write_text(json.dumps(V1_CARD), encoding="utf-8")
        assert CharacterCardImporter.import_file(json_path).card_data.name == "Legacy"

        png_path = tmp_path / "card.png"
        png_path.write_bytes(with_chunks(card_chunk("chara", V2_CARD)))
        assert CharacterCardImporter.import_file(png_path).card_data.name == "Extended"
