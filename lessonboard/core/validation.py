"""Input validation utilities.

This module provides validation for external video identifiers, page numbers,
catalog record shapes and outbound URL parameters. Everything that ends up in
the third-party embed URL passes through here first.
"""

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import structlog

logger = structlog.get_logger(__name__)

# Largest page number the embedded player accepts
MAX_PAGE_NUMBER = 9999


@dataclass(frozen=True)
class ValidationResult:
    """Result of a validation operation."""

    is_valid: bool
    error_message: Optional[str] = None
    sanitized_value: Optional[str] = None


@dataclass(frozen=True)
class ParamsValidationResult:
    """Result of validating a set of outbound query parameters."""

    is_valid: bool
    sanitized: Dict[str, str] = field(default_factory=dict)
    rejected_keys: List[str] = field(default_factory=list)


class BvidValidator:
    """Validates Bilibili BV identifiers.

    A bvid is "BV" followed by 10 characters from the base58 alphabet, which
    excludes 0, I, O and l.
    """

    BVID_PATTERN = re.compile(r"^BV[1-9A-NP-Za-km-z]{10}$")

    def validate(self, bvid: Any) -> ValidationResult:
        """Validate a bvid exactly as given, without any normalization."""
        if not isinstance(bvid, str):
            return ValidationResult(is_valid=False, error_message="bvid must be a string")

        # fullmatch so a trailing newline is not accepted by "$"
        if not self.BVID_PATTERN.fullmatch(bvid):
            return ValidationResult(is_valid=False, error_message="Invalid bvid format")

        return ValidationResult(is_valid=True, sanitized_value=bvid)

    def is_valid(self, bvid: Any) -> bool:
        """Quick check if bvid is valid."""
        return self.validate(bvid).is_valid

    def sanitize(self, bvid: Any) -> Optional[str]:
        """
        Strip surrounding whitespace and validate.

        Case is preserved: bvids are case-sensitive.

        Returns:
            The cleaned bvid, or None if it is not valid
        """
        if not isinstance(bvid, str):
            return None
        cleaned = bvid.strip()
        return cleaned if self.is_valid(cleaned) else None


class PageValidator:
    """Validates and coerces page numbers coming from untrusted input."""

    LEADING_INT_PATTERN = re.compile(r"^\s*([+-]?\d+)")

    def parse_int(self, value: str) -> Optional[int]:
        """
        Parse the leading integer of a string.

        "3abc" parses as 3, "abc" and "" do not parse.

        Returns:
            The parsed integer or None
        """
        match = self.LEADING_INT_PATTERN.match(value)
        if not match:
            return None
        return int(match.group(1))

    def is_valid(self, page: Any) -> bool:
        """Check that page is an int within [1, MAX_PAGE_NUMBER]."""
        return (
            isinstance(page, int)
            and not isinstance(page, bool)
            and 1 <= page <= MAX_PAGE_NUMBER
        )

    def sanitize(self, page: Any, max_page: Optional[int] = None) -> int:
        """
        Coerce any input to a usable page number.

        Strings are parsed for a leading integer, numbers are floored.
        Anything unparseable or below 1 becomes 1. The result is capped at
        max_page when given and always at MAX_PAGE_NUMBER.

        Args:
            page: Raw page value
            max_page: Optional upper bound, e.g. the number of parts

        Returns:
            Page number in [1, min(max_page, MAX_PAGE_NUMBER)]
        """
        page_num: Optional[int]

        if isinstance(page, bool):
            return 1
        if isinstance(page, str):
            page_num = self.parse_int(page)
        elif isinstance(page, int):
            page_num = page
        elif isinstance(page, float):
            page_num = math.floor(page) if math.isfinite(page) else None
        else:
            return 1

        if page_num is None or page_num < 1:
            return 1

        if max_page and page_num > max_page:
            return min(max_page, MAX_PAGE_NUMBER)

        return min(page_num, MAX_PAGE_NUMBER)


class VideoShapeValidator:
    """Structural validation of raw catalog records."""

    def _non_empty_str(self, value: Any) -> bool:
        return isinstance(value, str) and len(value) > 0

    def is_valid_part(self, obj: Any) -> bool:
        """Check a raw part record: page number, title and duration."""
        if not isinstance(obj, Mapping):
            return False
        return (
            page_validator.is_valid(obj.get("page"))
            and self._non_empty_str(obj.get("title"))
            and self._non_empty_str(obj.get("duration"))
        )

    def validate_video(self, obj: Any) -> ValidationResult:
        """
        Validate a raw video record.

        Args:
            obj: Raw record, typically a dict parsed from JSON

        Returns:
            ValidationResult naming the first failing field
        """
        if not isinstance(obj, Mapping):
            return ValidationResult(is_valid=False, error_message="record must be an object")

        for name in ("id", "title", "cover", "duration"):
            if not self._non_empty_str(obj.get(name)):
                return ValidationResult(
                    is_valid=False, error_message=f"{name} must be a non-empty string"
                )

        if not bvid_validator.is_valid(obj.get("bvid")):
            return ValidationResult(is_valid=False, error_message="bvid is invalid")

        description = obj.get("description")
        if description is not None and not isinstance(description, str):
            return ValidationResult(is_valid=False, error_message="description must be a string")

        parts = obj.get("parts")
        if not isinstance(parts, list) or not parts:
            return ValidationResult(is_valid=False, error_message="parts must be a non-empty list")

        if not all(self.is_valid_part(part) for part in parts):
            return ValidationResult(is_valid=False, error_message="parts contain an invalid part")

        pages = [part["page"] for part in parts]
        if len(set(pages)) != len(pages):
            return ValidationResult(is_valid=False, error_message="part pages must be unique")

        return ValidationResult(is_valid=True, sanitized_value=obj["id"])

    def is_valid_video(self, obj: Any) -> bool:
        """Quick check if a raw record is a valid video."""
        return self.validate_video(obj).is_valid


class URLParamsValidator:
    """Re-validates outbound query parameters against restrictive character classes."""

    KEY_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
    VALUE_PATTERN = re.compile(r"^[a-zA-Z0-9_.-]+$")

    def validate(self, params: Mapping[str, Any]) -> ParamsValidationResult:
        """
        Keep only key/value pairs made of safe characters.

        Args:
            params: Mapping of query keys to values

        Returns:
            ParamsValidationResult with the surviving pairs, in input order
        """
        sanitized: Dict[str, str] = {}
        rejected: List[str] = []

        for key, value in params.items():
            if not isinstance(key, str) or not self.KEY_PATTERN.fullmatch(key):
                rejected.append(str(key))
                continue

            string_value = str(value)
            if self.VALUE_PATTERN.fullmatch(string_value):
                sanitized[key] = string_value
            else:
                rejected.append(key)

        return ParamsValidationResult(
            is_valid=not rejected, sanitized=sanitized, rejected_keys=rejected
        )


def validate_player_props(props: Any) -> List[str]:
    """
    Collect every problem with a set of player props.

    Args:
        props: Mapping with bvid and optional page, autoplay, muted

    Returns:
        List of error messages, empty when the props are valid
    """
    if not isinstance(props, Mapping):
        return ["Props must be an object"]

    errors: List[str] = []

    if not bvid_validator.is_valid(props.get("bvid")):
        errors.append("Invalid or missing bvid")

    if props.get("page") is not None and not page_validator.is_valid(props.get("page")):
        errors.append("Invalid page number")

    for flag in ("autoplay", "muted"):
        if props.get(flag) is not None and not isinstance(props.get(flag), bool):
            errors.append(f"{flag} must be a boolean")

    return errors


# Singleton instances for convenience
bvid_validator = BvidValidator()
page_validator = PageValidator()
video_shape_validator = VideoShapeValidator()
url_params_validator = URLParamsValidator()


def is_valid_bvid(bvid: Any) -> bool:
    """Convenience function to validate a bvid."""
    return bvid_validator.is_valid(bvid)


def sanitize_bvid(bvid: Any) -> Optional[str]:
    """Convenience function to trim and validate a bvid."""
    return bvid_validator.sanitize(bvid)


def sanitize_page_number(page: Any, max_page: Optional[int] = None) -> int:
    """Convenience function to coerce a page number."""
    return page_validator.sanitize(page, max_page)


def validate_url_params(params: Mapping[str, Any]) -> ParamsValidationResult:
    """Convenience function to validate outbound query parameters."""
    return url_params_validator.validate(params)
