"""Korean phone number canonicalization.

Numbers are stored in one international form (``+82 10 1234 5678``) so that
the same subscriber typed as ``010-1234-5678``, ``821012345678`` or
``+8210 1234 5678`` deduplicates to a single value. ``to_display_form`` turns
the stored form back into the local notation shown to users.
"""

import re
from typing import Final

from loguru import logger

from src.user_service.core.exceptions import PHONE_FORMAT_UNRECOGNIZED

COUNTRY_PREFIX: Final = "+82"
_SEPARATORS: Final = re.compile(r"[\s\-()]")
_WHITESPACE: Final = re.compile(r"\s")
# mobile (10) or a one/two digit area code, then 7-8 subscriber digits
_KOREAN_NUMBER: Final = re.compile(r"^(10|2|3[0-9]|4[0-9]|5[0-9]|6[0-9]|7[0-9]|8[0-9]|9[0-9])[0-9]{7,8}$")


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def format_international_number(international: str) -> str:
    """Insert group spacing into a compact ``+82...`` number.

    Inputs shorter than twelve characters are returned untouched.
    """
    if international is None or len(international) < 12:
        return international

    number = international[len(COUNTRY_PREFIX):]
    if number.startswith("10"):
        return f"{COUNTRY_PREFIX} {number[:2]} {number[2:6]} {number[6:]}"
    if number.startswith("2"):
        return f"{COUNTRY_PREFIX} {number[:1]} {number[1:5]} {number[5:]}"
    return f"{COUNTRY_PREFIX} {number[:2]} {number[2:6]} {number[6:]}"


def normalize_phone_number(raw: str | None) -> str | None:
    """Convert a user supplied phone number to the canonical international form.

    Unrecognized input is logged and returned as given; callers must not
    assume the result is canonical.

    Examples:
        >>> normalize_phone_number("010-1234-5678")
        '+82 10 1234 5678'
        >>> normalize_phone_number("821012345678")
        '+82 10 1234 5678'
    """
    if _is_blank(raw):
        return raw

    phone = raw
    if phone.startswith("+0"):
        logger.info(f"Dropping erroneous '+0' prefix: {phone} -> {phone[2:]}")
        phone = phone[2:]

    cleaned = _SEPARATORS.sub("", phone)

    if cleaned.startswith(COUNTRY_PREFIX):
        return format_international_number(cleaned)
    if cleaned.startswith("82"):
        return format_international_number("+" + cleaned)
    if cleaned.startswith("0"):
        return format_international_number(COUNTRY_PREFIX + cleaned[1:])
    if len(cleaned) in (10, 11) and cleaned.isascii() and cleaned.isdigit():
        # local number typed without its leading zero
        return format_international_number(COUNTRY_PREFIX + cleaned)

    logger.warning(f"{PHONE_FORMAT_UNRECOGNIZED}: {raw!r} left as entered")
    return raw


def is_valid_phone_number(raw: str | None) -> bool:
    """Report whether ``raw`` plausibly is a Korean mobile or landline number."""
    if _is_blank(raw):
        return False

    if raw.startswith("+0"):
        logger.warning(f"Rejecting phone number with '+0' prefix: {raw}")
        return False

    cleaned = _SEPARATORS.sub("", raw)
    if cleaned.startswith(COUNTRY_PREFIX):
        cleaned = cleaned[len(COUNTRY_PREFIX):]
    elif cleaned.startswith("82"):
        cleaned = cleaned[2:]
    elif cleaned.startswith("0"):
        cleaned = cleaned[1:]

    return _KOREAN_NUMBER.match(cleaned) is not None


def to_display_form(international: str | None) -> str | None:
    """Render a stored ``+82`` number in local notation, e.g. ``010-1234-5678``.

    Anything that does not start with ``+82`` is returned unchanged.
    """
    if _is_blank(international) or not international.startswith(COUNTRY_PREFIX):
        return international

    number = _WHITESPACE.sub("", international)[len(COUNTRY_PREFIX):]

    if number.startswith("10"):
        return f"010-{number[2:6]}-{number[6:]}"
    if number.startswith("2"):
        return f"02-{number[1:5]}-{number[5:]}"
    if number.startswith("0"):
        return f"{number[:3]}-{number[3:7]}-{number[7:]}"
    return f"0{number[:2]}-{number[2:6]}-{number[6:]}"


class PhoneNormalizer:
    """Injectable facade over the module level phone functions."""

    def normalize(self, raw: str | None) -> str | None:
        return normalize_phone_number(raw)

    def is_valid(self, raw: str | None) -> bool:
        return is_valid_phone_number(raw)

    def to_display_form(self, international: str | None) -> str | None:
        return to_display_form(international)
