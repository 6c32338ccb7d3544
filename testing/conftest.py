"""Shared fixtures for card-forge tests."""

import base64
import json
from io import BytesIO

import pytest
from PIL import Image

from card_forge.character_cards import (
    CharacterAsset,
    CharacterBook,
    CharacterBookEntry,
    CharacterCardData,
    PNGMetadataHandler,
)


def make_png(size=(8, 8), color=(200, 30, 30)) -> bytes:
    """Small real PNG written by Pillow."""
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def card_chunk(keyword: str, card: dict):
    """tEXt chunk carrying ``card`` the way card editors write it."""
    encoded = base64.b64encode(json.dumps(card).encode("utf-8")).decode("ascii")
    return PNGMetadataHandler.encode_text_chunk(keyword, encoded)


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def full_card():
    """Card with every V1, V2 and V3 field populated."""
    return CharacterCardData(
        name="Seraphina",
        description="A guardian of the forest glade.",
        personality="Kind, protective, wise",
        scenario="{{user}} wakes up in her cottage.",
        first_mes="*She smiles.* You're awake.",
        mes_example="<START>\n{{char}}: Rest now.",
        creator_notes="Works best with long replies.",
        system_prompt="Stay in character.",
        post_history_instructions="Keep answers under 300 words.",
        alternate_greetings=["Hello, traveler.", "Oh! You startled me."],
        tags=["fantasy", "guardian"],
        creator="tester",
        character_version="2.1",
        extensions={"depth_prompt": {"depth": 4, "prompt": "Be gentle."}},
        character_book=CharacterBook(
            name="Glade Lore",
            scan_depth=3,
            extensions={},
            entries=[
                CharacterBookEntry(
                    keys=["glade", "forest"],
                    content="The glade is protected by old magic.",
                    insertion_order=1,
                    id=1,
                    name="Glade",
                    priority=10,
                    position="before_char",
                    use_regex=True,
                ),
            ],
        ),
        assets=[CharacterAsset(type="icon", uri="ccdefault:", name="main", ext="png")],
        nickname="Sera",
        creator_notes_multilingual={"ja": "長い返信が最適です。"},
        source=["https://example.com/seraphina"],
        group_only_greetings=["Hello, everyone."],
        creation_date=1700000000,
        modification_date=1700003600,
    )
