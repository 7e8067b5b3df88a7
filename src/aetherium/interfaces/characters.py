"""Character Directory Protocol Interface."""

from typing import Protocol

from aetherium.domain.models import CharacterID, CharacterProfile


class ICharacterDirectory(Protocol):
    """Read access to the characters that can enter battles."""

    def get_character(self, character_id: CharacterID) -> CharacterProfile:
        """Return the character's profile.

        Raises:
            CharacterNotFoundError: If the character does not exist
        """
        ...
