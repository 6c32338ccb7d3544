"""
Character Card Errors
====================

Exception types raised by the PNG chunk codec and the card import path.
"""


class CardCodecError(Exception):
    """Base exception for character card codec errors."""
    pass


class StreamMalformed(CardCodecError):
    """PNG byte stream could not be split into chunks."""
    pass


class TextDecodeFailed(CardCodecError):
    """tEXt payload or embedded card text could not be decoded."""
    pass


class CardImportError(CardCodecError):
    """No usable character card could be read from the input."""
    pass


class TextEncodeFailed(CardCodecError):
    """Card text could not be encoded for output (e.g. lone surrogates)."""
    pass
