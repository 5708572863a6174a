"""
Merge mode enumeration and validation.

Replaces free-form mode strings with a closed set of strategies.
"""

from enum import Enum
from typing import Any

from .errors import UnknownMergeModeError


class MergeMode(str, Enum):
    """
    Strategies for folding staged rows into the target table.

    Inherits from str so modes compare equal to their plain string values
    and serialize cleanly in logs and metrics labels.
    """

    APPEND = "append"    # insert new keys only
    UPDATE = "update"    # insert new keys and update changed rows
    REPLACE = "replace"  # truncate target, then insert everything


class MergeModeValidator:
    """Validates requested merge modes against the supported set."""

    @staticmethod
    def validate(mode: Any) -> MergeMode:
        """
        Resolve a requested mode to a MergeMode.

        Args:
            mode: MergeMode member or its case-insensitive string value

        Returns:
            The matching MergeMode

        Raises:
            UnknownMergeModeError: If mode is not append, update or replace
        """
        if isinstance(mode, MergeMode):
            return mode

        if not isinstance(mode, str):
            raise UnknownMergeModeError(mode)

        try:
            return MergeMode(mode.strip().lower())
        except ValueError:
            raise UnknownMergeModeError(mode) from None

    @staticmethod
    def is_valid(mode: Any) -> bool:
        """Return True if mode names a supported strategy."""
        try:
            MergeModeValidator.validate(mode)
        except UnknownMergeModeError:
            return False
        return True
