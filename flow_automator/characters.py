"""Saved character library for character videos.

Characters are stored once, by name, with 1-3 reference images. A
character-video prompt then only needs to mention the names: every saved
character whose name appears in the prompt (case-insensitive) is attached
to the job with its first reference image.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

from flow_automator.exceptions import InvalidJobError, NotFoundError, StorageError
from flow_automator.scheduler.jobs import MAX_CHARACTERS

logger = logging.getLogger(__name__)

MAX_REFERENCE_IMAGES = 3


@dataclass
class Character:
    """A saved character.

    Attributes:
        name: Name used to mention the character in prompts
        images: 1-3 reference image paths or URLs
        created_at: When the character was saved
    """

    name: str
    images: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def primary_image(self) -> str:
        """The reference image attached to jobs."""
        return self.images[0]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "images": list(self.images),
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Character":
        return cls(
            name=data["name"],
            images=list(data.get("images", [])),
            created_at=(
                datetime.fromisoformat(data["created_at"])
                if data.get("created_at")
                else datetime.utcnow()
            ),
        )


class CharacterLibrary:
    """Persistent collection of named characters.

    Stored as a JSON file; every change is written back immediately.

    Example:
        library = CharacterLibrary(data_dir / "characters.json")
        library.add("Mia", ["/refs/mia.png"])
        payload = library.payload_for_prompt("Mia waves at the camera")
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._characters: Dict[str, Character] = {}
        self._loaded = False

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        if self._loaded:
            return
        self._loaded = True

        if not self._path.exists():
            return

        try:
            data = json.loads(self._path.read_text())
        except (json.JSONDecodeError, OSError) as e:
            raise StorageError(
                f"Failed to read character library: {e}",
                details={"path": str(self._path)},
            ) from e

        if not isinstance(data, dict) or not isinstance(data.get("characters", []), list):
            raise StorageError(
                "Character file is not a character library",
                details={"path": str(self._path)},
            )

        for entry in data.get("characters", []):
            try:
                character = Character.from_dict(entry)
                key = character.name.lower()
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping invalid character entry: {e}")
                continue
            self._characters[key] = character

        logger.debug(f"Loaded {len(self._characters)} characters from {self._path}")

    def _save(self) -> None:
        data = {
            "version": "1.0.0",
            "characters": [c.to_dict() for c in self._characters.values()],
        }
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(data, indent=2))
            os.replace(tmp_path, self._path)
        except OSError as e:
            raise StorageError(
                f"Failed to write character library: {e}",
                details={"path": str(self._path)},
            ) from e

    def list(self) -> List[Character]:
        """All saved characters, in insertion order."""
        self._load()
        return list(self._characters.values())

    def get(self, name: str) -> Character:
        """Look up a character by name (case-insensitive).

        Raises:
            NotFoundError: If no character has that name
        """
        self._load()
        character = self._characters.get(name.strip().lower())
        if character is None:
            raise NotFoundError(f"Character not found: {name}")
        return character

    def add(self, name: str, images: List[str]) -> Character:
        """Save a character, replacing any character with the same name.

        Args:
            name: Character name
            images: 1-3 reference images

        Returns:
            The saved character

        Raises:
            InvalidJobError: If the name is empty or the image count is wrong
        """
        self._load()
        name = name.strip()
        if not name:
            raise InvalidJobError("Character name cannot be empty")
        if not 1 <= len(images) <= MAX_REFERENCE_IMAGES:
            raise InvalidJobError(
                f"Character must have 1-{MAX_REFERENCE_IMAGES} images, got {len(images)}"
            )

        character = Character(name=name, images=list(images))
        self._characters[name.lower()] = character
        self._save()
        logger.info(f"Added character: {name} with {len(images)} images")
        return character

    def remove(self, name: str) -> bool:
        """Delete a character.

        Returns:
            True if a character was removed
        """
        self._load()
        if self._characters.pop(name.strip().lower(), None) is None:
            return False
        self._save()
        logger.info(f"Removed character: {name}")
        return True

    def mentioned_in(self, prompt: str) -> List[Character]:
        """Characters whose name appears in the prompt (case-insensitive)."""
        self._load()
        text = prompt.lower()
        return [c for c in self._characters.values() if c.name.lower() in text]

    def payload_for_prompt(self, prompt: str) -> Dict[str, Any]:
        """Build a character-video payload from the names mentioned in a prompt.

        Args:
            prompt: Prompt mentioning 1-3 saved characters

        Returns:
            Payload dict for a character_video job

        Raises:
            InvalidJobError: If the prompt mentions no character or more
                than the allowed number
        """
        prompt = prompt.strip()
        mentioned = self.mentioned_in(prompt)

        if not mentioned:
            raise InvalidJobError(
                f"No characters mentioned (need 1-{MAX_CHARACTERS})",
                details={"prompt": prompt},
            )
        if len(mentioned) > MAX_CHARACTERS:
            raise InvalidJobError(
                f"Too many characters ({len(mentioned)}) - max {MAX_CHARACTERS} allowed",
                details={"prompt": prompt},
            )

        logger.debug(
            f'Prompt "{prompt}" -> characters: {", ".join(c.name for c in mentioned)}'
        )
        return {
            "characters": [{"name": c.name, "image": c.primary_image} for c in mentioned],
            "prompt": prompt,
        }
