"""
Character Card Data Models
=========================

Pydantic models for the unified character card document and the schema
table for the three wire formats (V1 legacy, V2 chara_card_v2, V3 chara_card_v3).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict, List, Any, Literal, Tuple
from pydantic import BaseModel, Field, ConfigDict


# ===========================
# Spec Versions
# ===========================

class SpecVersion(str, Enum):
    """Character card wire format versions."""
    V1 = "v1"
    V2 = "v2"
    V3 = "v3"


@dataclass(frozen=True)
class CardSchema:
    """Identifying markers of one wire format."""
    spec: Optional[str]
    spec_version: Optional[str]
    keyword: str
    label: str


CHARA_KEYWORD = "chara"
CCV3_KEYWORD = "ccv3"

CARD_SCHEMAS: Dict[SpecVersion, CardSchema] = {
    SpecVersion.V1: CardSchema(None, None, CHARA_KEYWORD, "Tavern Card V1"),
    SpecVersion.V2: CardSchema("chara_card_v2", "2.0", CHARA_KEYWORD, "Character Card V2"),
    SpecVersion.V3: CardSchema("chara_card_v3", "3.0", CCV3_KEYWORD, "Character Card V3"),
}

CARD_KEYWORDS = frozenset(schema.keyword for schema in CARD_SCHEMAS.values())

DEFAULT_CHARACTER_VERSION = "1.0"

V1_FIELDS: Tuple[str, ...] = (
    "name",
    "description",
    "personality",
    "scenario",
    "first_mes",
    "mes_example",
)

V2_FIELDS: Tuple[str, ...] = V1_FIELDS + (
    "creator_notes",
    "system_prompt",
    "post_history_instructions",
    "alternate_greetings",
    "tags",
    "creator",
    "character_version",
    "extensions",
    "character_book",
)

# Written only when non-empty
V3_OPTIONAL_FIELDS: Tuple[str, ...] = (
    "assets",
    "nickname",
    "creator_notes_multilingual",
    "source",
    "creation_date",
    "modification_date",
)

V3_FIELDS: Tuple[str, ...] = V2_FIELDS + ("group_only_greetings",) + V3_OPTIONAL_FIELDS

VERSION_FIELDS: Dict[SpecVersion, Tuple[str, ...]] = {
    SpecVersion.V1: V1_FIELDS,
    SpecVersion.V2: V2_FIELDS,
    SpecVersion.V3: V3_FIELDS,
}


# ===========================
# Lorebook
# ===========================

class CharacterBookEntry(BaseModel):
    """World info / lorebook entry."""
    model_config = ConfigDict(extra='allow')

    keys: List[str] = Field(default_factory=list)
    content: str = ""
    extensions: Dict[str, Any] = Field(default_factory=dict)
    enabled: bool = True
    insertion_order: int = 100
    case_sensitive: Optional[bool] = None
    name: Optional[str] = None
    priority: Optional[int] = None
    id: Optional[int] = None
    comment: Optional[str] = None
    selective: Optional[bool] = None
    secondary_keys: Optional[List[str]] = None
    constant: Optional[bool] = None
    position: Optional[Literal["before_char", "after_char"]] = None
    use_regex: Optional[bool] = None  # V3 only

    def to_wire(self, include_regex: bool = True) -> Dict[str, Any]:
        """Plain dict for JSON output; unset optional fields are left out."""
        entry = {
            key: value for key, value in self.model_dump().items()
            if not (value is None and key in type(self).model_fields)
        }
        if not include_regex:
            entry.pop("use_regex", None)
        return entry


class CharacterBook(BaseModel):
    """Character lorebook / world info."""
    model_config = ConfigDict(extra='allow')

    name: Optional[str] = None
    description: Optional[str] = None
    scan_depth: Optional[int] = None
    token_budget: Optional[int] = None
    recursive_scanning: Optional[bool] = None
    extensions: Dict[str, Any] = Field(default_factory=dict)
    entries: List[CharacterBookEntry] = Field(default_factory=list)

    def to_wire(self, include_regex: bool = True) -> Dict[str, Any]:
        """Plain dict for JSON output; entries are serialized with ``to_wire``."""
        book = {
            key: value for key, value in self.model_dump(exclude={"entries"}).items()
            if not (value is None and key in type(self).model_fields)
        }
        book["entries"] = [entry.to_wire(include_regex) for entry in self.entries]
        return book


# ===========================
# V3 Assets
# ===========================

ASSET_TYPES = ("icon", "background", "user_icon", "emotion")


class CharacterAsset(BaseModel):
    """V3 asset reference. ``type`` may also be a custom string."""
    model_config = ConfigDict(extra='allow')

    type: str = "icon"
    uri: str = ""
    name: str = ""
    ext: str = "png"


# ===========================
# Unified Card Document
# ===========================

class CharacterCardData(BaseModel):
    """
    Unified character card holding every field of V1, V2 and V3.

    V1/V2 fields are always present. V3-only fields default to empty values,
    with creation/modification dates left as None when unset.
    """
    model_config = ConfigDict(validate_assignment=True)

    # V1
    name: str = ""
    description: str = ""
    personality: str = ""
    scenario: str = ""
    first_mes: str = ""
    mes_example: str = ""

    # V2
    creator_notes: str = ""
    system_prompt: str = ""
    post_history_instructions: str = ""
    alternate_greetings: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    creator: str = ""
    character_version: str = DEFAULT_CHARACTER_VERSION
    extensions: Dict[str, Any] = Field(default_factory=dict)
    character_book: Optional[CharacterBook] = None

    # V3
    assets: List[CharacterAsset] = Field(default_factory=list)
    nickname: str = ""
    creator_notes_multilingual: Dict[str, str] = Field(default_factory=dict)
    source: List[str] = Field(default_factory=list)
    group_only_greetings: List[str] = Field(default_factory=list)
    creation_date: Optional[int] = None  # unix seconds
    modification_date: Optional[int] = None

    def fields_of(self, version: SpecVersion) -> Dict[str, Any]:
        """Values of the fields that ``version`` can represent."""
        return {name: getattr(self, name) for name in VERSION_FIELDS[SpecVersion(version)]}


# ===========================
# Factories
# ===========================

def create_empty_card_data() -> CharacterCardData:
    """New card with every field at its default."""
    return CharacterCardData()


def create_empty_book_entry(entry_id: int) -> CharacterBookEntry:
    """New enabled lorebook entry ordered by its id."""
    return CharacterBookEntry(
        keys=[],
        content="",
        extensions={},
        enabled=True,
        insertion_order=entry_id,
        id=entry_id,
        name="",
        priority=10,
        position="before_char",
    )


def next_entry_id(book: CharacterBook) -> int:
    """One past the highest entry id in the book (entries without an id count as 0)."""
    return max((entry.id or 0 for entry in book.entries), default=0) + 1


def create_empty_asset() -> CharacterAsset:
    return CharacterAsset(type="icon", uri="", name="", ext="png")


# ===========================
# Import/Export DTOs
# ===========================

class ExtractedCard(BaseModel):
    """Raw wire card read from a PNG and the version it was tagged with."""
    card: Dict[str, Any]
    detected_version: SpecVersion


class CardImportResult(BaseModel):
    """Result of character card import operation."""
    card_data: CharacterCardData
    version: SpecVersion
    image: Optional[bytes] = None  # PNG the card came from, if any
    warnings: List[str] = Field(default_factory=list)
