"""Language of user-facing messages.

Prompts sent to the models stay in Chinese regardless of this setting; only
error and status messages rendered by `core.messages` follow it.
"""

from __future__ import annotations

from enum import Enum


class Language(str, Enum):
    """Supported natural-language choices for user-facing output."""

    CHINESE = "zh"
    ENGLISH = "en"

    @classmethod
    def parse(cls, value: str | None) -> "Language":
        """Accept locale-ish spellings (`zh-CN`, `en_US`, `English`); unknown -> Chinese."""

        head = (value or "").strip().lower().replace("_", "-").split("-")[0]
        if head in ("en", "english"):
            return cls.ENGLISH
        return cls.CHINESE

    def label(self) -> str:
        """Human readable label for tables and logging."""

        return "English" if self is Language.ENGLISH else "中文"
