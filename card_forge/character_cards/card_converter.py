"""
Card Converter
=============

Converts between the unified CharacterCardData document and the V1, V2 and
V3 wire formats.

Lifting a wire card is tolerant: missing, empty or wrongly typed values fall
back to the unified defaults. Projecting is lossy: fields the target
version cannot represent are dropped.
"""

import copy
import logging
from typing import Dict, Any, Optional, List

from pydantic import ValidationError

from .format_detector import FormatDetector
from .models import (
    CARD_SCHEMAS,
    DEFAULT_CHARACTER_VERSION,
    V1_FIELDS,
    CharacterAsset,
    CharacterBook,
    CharacterBookEntry,
    CharacterCardData,
    SpecVersion,
)

logger = logging.getLogger(__name__)


def _warn(warnings: Optional[List[str]], message: str) -> None:
    logger.warning(message)
    if warnings is not None:
        warnings.append(message)


def _text(value: Any, default: str = "") -> str:
    """Non-empty string or the default."""
    return value if isinstance(value, str) and value else default


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _mapping(value: Any) -> Dict[str, Any]:
    return dict(value) if isinstance(value, dict) else {}


def _str_mapping(value: Any) -> Dict[str, str]:
    return {key: text for key, text in _mapping(value).items() if isinstance(text, str)}


def _timestamp(value: Any) -> Optional[int]:
    """Unix seconds as int, or None for anything that is not a whole number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _lift_book(value: Any, warnings: Optional[List[str]]) -> Optional[CharacterBook]:
    if not value:
        return None
    if not isinstance(value, dict):
        _warn(warnings, "Ignoring character_book: expected an object")
        return None

    entries = value.get("entries")
    if isinstance(entries, list):
        readable = []
        for index, item in enumerate(entries):
            try:
                readable.append(CharacterBookEntry.model_validate(item))
            except ValidationError:
                _warn(warnings, f"Skipping unreadable character_book entry #{index}")
        value = dict(value, entries=readable)

    try:
        return CharacterBook.model_validate(value)
    except ValidationError as e:
        _warn(warnings, f"Ignoring unreadable character_book ({e.error_count()} error(s))")
        return None


def _lift_assets(value: Any, warnings: Optional[List[str]]) -> List[CharacterAsset]:
    if not isinstance(value, list):
        return []
    assets = []
    for index, item in enumerate(value):
        try:
            assets.append(CharacterAsset.model_validate(item))
        except ValidationError:
            _warn(warnings, f"Skipping unreadable asset #{index}")
    return assets


def _card_data_section(card: Dict[str, Any]) -> Dict[str, Any]:
    return _mapping(card.get("data"))


def _check_spec_version(card: Dict[str, Any], version: SpecVersion, warnings: Optional[List[str]]) -> None:
    declared = card.get("spec_version")
    expected = CARD_SCHEMAS[version].spec_version
    if declared is not None and declared != expected:
        _warn(warnings, f"Card declares spec_version {declared!r}, reading it as {expected}")


def _lift_common(data: Dict[str, Any], warnings: Optional[List[str]]) -> Dict[str, Any]:
    """V1 + V2 fields shared by the V2 and V3 lifters."""
    fields = {field: _text(data.get(field)) for field in V1_FIELDS}
    fields.update(
        creator_notes=_text(data.get("creator_notes")),
        system_prompt=_text(data.get("system_prompt")),
        post_history_instructions=_text(data.get("post_history_instructions")),
        alternate_greetings=_str_list(data.get("alternate_greetings")),
        tags=_str_list(data.get("tags")),
        creator=_text(data.get("creator")),
        character_version=_text(data.get("character_version"), DEFAULT_CHARACTER_VERSION),
        extensions=_mapping(data.get("extensions")),
        character_book=_lift_book(data.get("character_book"), warnings),
    )
    return fields


class CardConverter:
    """Convert between wire-format cards and CharacterCardData."""

    @staticmethod
    def from_v1(card: Dict[str, Any], warnings: Optional[List[str]] = None) -> CharacterCardData:
        """Lift a flat V1 card."""
        return CharacterCardData(**{field: _text(card.get(field)) for field in V1_FIELDS})

    @staticmethod
    def from_v2(card: Dict[str, Any], warnings: Optional[List[str]] = None) -> CharacterCardData:
        """Lift a ``chara_card_v2`` card. V3-only fields stay at their defaults."""
        _check_spec_version(card, SpecVersion.V2, warnings)
        return CharacterCardData(**_lift_common(_card_data_section(card), warnings))

    @staticmethod
    def from_v3(card: Dict[str, Any], warnings: Optional[List[str]] = None) -> CharacterCardData:
        """Lift a ``chara_card_v3`` card."""
        _check_spec_version(card, SpecVersion.V3, warnings)
        data = _card_data_section(card)
        fields = _lift_common(data, warnings)
        fields.update(
            assets=_lift_assets(data.get("assets"), warnings),
            nickname=_text(data.get("nickname")),
            creator_notes_multilingual=_str_mapping(data.get("creator_notes_multilingual")),
            source=_str_list(data.get("source")),
            group_only_greetings=_str_list(data.get("group_only_greetings")),
            creation_date=_timestamp(data.get("creation_date")),
            modification_date=_timestamp(data.get("modification_date")),
        )
        return CharacterCardData(**fields)

    @classmethod
    def lift(
        cls,
        card: Dict[str, Any],
        version: SpecVersion,
        warnings: Optional[List[str]] = None
    ) -> CharacterCardData:
        """Lift ``card`` with the lifter for ``version``."""
        lifters = {
            SpecVersion.V1: cls.from_v1,
            SpecVersion.V2: cls.from_v2,
            SpecVersion.V3: cls.from_v3,
        }
        return lifters[SpecVersion(version)](card, warnings)

    @classmethod
    def to_editor_data(cls, card: Any, warnings: Optional[List[str]] = None) -> CharacterCardData:
        """
        Lift any decoded card JSON into a CharacterCardData.

        A ``spec`` marker that is not a known card spec (e.g. a future
        ``chara_card_v99``) yields an empty card instead of an error.

        Args:
            card: Parsed card JSON
            warnings: Optional list that collects conversion warnings

        Returns:
            Unified card data
        """
        if not isinstance(card, dict):
            _warn(warnings, f"Card JSON is {type(card).__name__}, starting from an empty card")
            return CharacterCardData()

        if "spec" in card and not (
            FormatDetector.is_spec_marker(card["spec"], SpecVersion.V2)
            or FormatDetector.is_spec_marker(card["spec"], SpecVersion.V3)
        ):
            _warn(warnings, f"Unsupported card spec {card['spec']!r}, starting from an empty card")
            return CharacterCardData()

        version = FormatDetector.detect(card)
        character = cls.lift(card, version, warnings)
        logger.info(f"Converted {FormatDetector.get_format_name(version)} card '{character.name}'")
        return character

    @staticmethod
    def to_v1(data: CharacterCardData) -> Dict[str, Any]:
        """Project to V1. Everything beyond the six base fields is dropped."""
        return {field: getattr(data, field) for field in V1_FIELDS}

    @staticmethod
    def _v2_fields(data: CharacterCardData, include_regex: bool) -> Dict[str, Any]:
        fields = {field: getattr(data, field) for field in V1_FIELDS}
        fields.update(
            creator_notes=data.creator_notes,
            system_prompt=data.system_prompt,
            post_history_instructions=data.post_history_instructions,
            alternate_greetings=list(data.alternate_greetings),
            tags=list(data.tags),
            creator=data.creator,
            character_version=data.character_version,
            extensions=copy.deepcopy(data.extensions),
        )
        if data.character_book is not None:
            fields["character_book"] = data.character_book.to_wire(include_regex=include_regex)
        return fields

    @classmethod
    def to_v2(cls, data: CharacterCardData) -> Dict[str, Any]:
        """Project to ``chara_card_v2``. Lorebook ``use_regex`` flags are dropped."""
        schema = CARD_SCHEMAS[SpecVersion.V2]
        return {
            "spec": schema.spec,
            "spec_version": schema.spec_version,
            "data": cls._v2_fields(data, include_regex=False),
        }

    @classmethod
    def to_v3(cls, data: CharacterCardData) -> Dict[str, Any]:
        """
        Project to ``chara_card_v3``.

        Optional V3 fields are written only when non-empty. A creation or
        modification date of 0 counts as unset.
        """
        fields = cls._v2_fields(data, include_regex=True)
        fields["group_only_greetings"] = list(data.group_only_greetings)

        if data.assets:
            fields["assets"] = [asset.model_dump() for asset in data.assets]
        if data.nickname:
            fields["nickname"] = data.nickname
        if data.creator_notes_multilingual:
            fields["creator_notes_multilingual"] = dict(data.creator_notes_multilingual)
        if data.source:
            fields["source"] = list(data.source)
        if data.creation_date:
            fields["creation_date"] = data.creation_date
        if data.modification_date:
            fields["modification_date"] = data.modification_date

        schema = CARD_SCHEMAS[SpecVersion.V3]
        return {
            "spec": schema.spec,
            "spec_version": schema.spec_version,
            "data": fields,
        }

    @classmethod
    def project(cls, data: CharacterCardData, version: SpecVersion) -> Dict[str, Any]:
        """Project ``data`` to the wire format of ``version``."""
        projections = {
            SpecVersion.V1: cls.to_v1,
            SpecVersion.V2: cls.to_v2,
            SpecVersion.V3: cls.to_v3,
        }
        return projections[SpecVersion(version)](data)
