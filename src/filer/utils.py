"""Utility functions for file names."""

import unicodedata
from typing import Tuple

from filer.errors import InvalidArgumentError

# Punctuation that is safe on every file system we store to
KEPT_PUNCTUATION = frozenset("-_")


def _is_symbol(char: str) -> bool:
    return unicodedata.category(char).startswith("S")


def _is_punctuation(char: str) -> bool:
    return (
        unicodedata.category(char).startswith("P") and char not in KEPT_PUNCTUATION
    )


def clean_for_filesystem(name: str) -> str:
    """Strip characters that should not end up in a stored file name.

    Whitespace and symbols are removed everywhere. If the name has an
    extension, every dot but the last one is dropped and punctuation is
    removed from both the base and the extension.

    Args:
        name: File name as given by the caller

    Returns:
        Cleaned file name

    Examples:
        >>> clean_for_filesystem('my photo.png')
        'myphoto.png'
        >>> clean_for_filesystem('report.v2.final.pdf')
        'reportv2final.pdf'
        >>> clean_for_filesystem('price$€.txt')
        'price.txt'
    """
    if not name:
        return name

    result = "".join(c for c in name if not c.isspace() and not _is_symbol(c))
    if "." not in result:
        return result

    *base_parts, extension = result.split(".")
    base = "".join(c for c in "".join(base_parts) if not _is_punctuation(c))
    extension = "".join(c for c in extension if not _is_punctuation(c))
    return f"{base}.{extension}"


def split_file_name(name: str) -> Tuple[str, str]:
    """Split a file name into base and extension (without the dot).

    Examples:
        >>> split_file_name('pic.png')
        ('pic', 'png')
        >>> split_file_name('archive')
        ('archive', '')
    """
    base, dot, extension = name.rpartition(".")
    if not dot:
        return name, ""
    return base, extension


def validate_file_name(name: str) -> str:
    """Validate a caller-supplied file name and return its cleaned form.

    Args:
        name: File name including extension (e.g., 'pic.png')

    Returns:
        Name cleaned for the file system

    Raises:
        InvalidArgumentError: If the name is too short, has no extension,
            contains control characters, or has nothing left once cleaned
    """
    if not isinstance(name, str):
        raise InvalidArgumentError(f"File name must be a string, got {type(name).__name__}")
    if len(name) <= 2:
        raise InvalidArgumentError(f"Invalid file name: '{name}' is too short")
    if "." not in name:
        raise InvalidArgumentError(
            f"File name should contain a file extension: '{name}'"
        )
    if any(unicodedata.category(c) == "Cc" for c in name):
        raise InvalidArgumentError(
            f"File name contains control characters: {name!r}"
        )

    cleaned = clean_for_filesystem(name)
    base, extension = split_file_name(cleaned)
    if not base or not extension:
        raise InvalidArgumentError(
            f"File name '{name}' has no usable base name or extension"
        )
    return cleaned


def disambiguate(name: str, counter: int) -> str:
    """Append a counter to the base of a file name, keeping the extension.

    Examples:
        >>> disambiguate('pic.png', 1)
        'pic1.png'
        >>> disambiguate('pic.png', 12)
        'pic12.png'
    """
    base, extension = split_file_name(name)
    if not extension:
        return f"{base}{counter}"
    return f"{base}{counter}.{extension}"
