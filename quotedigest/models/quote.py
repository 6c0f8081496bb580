"""
Quote data model for Quote Digest.

Defines the Quote dataclass representing a single submitted quotation.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
import re
import uuid

from quotedigest.errors import ValidationError

_ANGLE_BRACKETS = re.compile(r"[<>]")


def clean_text(value: str) -> str:
    """Trim whitespace and strip angle brackets from user input."""
    if value is None:
        return ""
    return _ANGLE_BRACKETS.sub("", str(value).strip())


@dataclass
class Quote:
    """
    A submitted quotation.

    The index is assigned once at submission and never reused. Only
    approved quotes are eligible for random selection and digests.

    Attributes:
        text: The quotation itself.
        author: Who said it.
        area: Topic or field the quote belongs to.
        index: Monotonic submission index, starting at 1.
        id: Opaque identifier (UUID string, or the store's record id).
        approved: Moderation flag.
        submitted_at: When the quote was submitted.
    """

    # Required fields
    text: str
    author: str
    area: str
    index: int

    # Optional fields with defaults
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    approved: bool = False
    submitted_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """
        Validate that required fields are present and valid.

        Raises:
            ValidationError: If validation fails.
        """
        errors = []

        for name in ("text", "author", "area"):
            value = getattr(self, name)
            if not value or not str(value).strip():
                errors.append(f"{name} is required and cannot be empty")

        if not isinstance(self.index, int) or isinstance(self.index, bool) or self.index < 1:
            errors.append(f"index must be a positive integer, got {self.index!r}")

        if errors:
            raise ValidationError(f"Quote validation failed: {'; '.join(errors)}")

    @classmethod
    def from_submission(cls, text: str, author: str, area: str, index: int) -> "Quote":
        """Build an unapproved quote from raw user input."""
        return cls(
            text=clean_text(text),
            author=clean_text(author),
            area=clean_text(area),
            index=index,
        )

    def to_dict(self) -> dict:
        """Convert to a plain dictionary with ISO format timestamps."""
        data = asdict(self)
        data["submitted_at"] = self.submitted_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Quote":
        """Create a Quote from a dictionary (e.g., from storage)."""
        data = data.copy()
        if data.get("submitted_at") and isinstance(data["submitted_at"], str):
            data["submitted_at"] = datetime.fromisoformat(data["submitted_at"])
        return cls(**data)

    def __str__(self) -> str:
        return f'#{self.index} "{self.text}" - {self.author}'

    def __repr__(self) -> str:
        return (
            f"Quote(index={self.index}, author={self.author!r}, "
            f"approved={self.approved})"
        )
