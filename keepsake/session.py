"""Session — the signed-in identity passed explicitly to each operation."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Session:
    """Identity of the signed-in user.

    Attributes:
        user_id: The signed-in user's id (used as event author).
        couple_id: The couple whose events and tasks are being viewed.
    """

    user_id: str
    couple_id: str
