"""Tests for the saved character library."""

import json
from pathlib import Path

import pytest

from flow_automator.characters import Character, CharacterLibrary
from flow_automator.exceptions import InvalidJobError, NotFoundError, StorageError
from flow_automator.scheduler.jobs import Job, JobKind


@pytest.fixture
def library(tmp_path: Path) -> CharacterLibrary:
    return CharacterLibrary(tmp_path / "characters.json")


class TestCharacter:
    """Tests for the Character dataclass."""

    def test_primary_image(self):
        """The first reference image is the one attached to jobs."""
        character = Character(name="Mia", images=["front.png", "side.png"])
        assert character.primary_image == "front.png"

    def test_dict_round_trip(self):
        character = Character(name="Mia", images=["front.png"])
        assert Character.from_dict(character.to_dict()) == character


class TestCharacterLibrary:
    """Tests for adding, listing and removing characters."""

    def test_empty_library(self, library: CharacterLibrary):
        """A missing file is an empty library."""
        assert library.list() == []

    def test_add_and_get(self, library: CharacterLibrary):
        library.add("Mia", ["mia.png"])

        character = library.get("mia")
        assert character.name == "Mia"
        assert character.images == ["mia.png"]

    def test_add_persists(self, library: CharacterLibrary):
        """Saved characters are visible to a fresh library on the same file."""
        library.add("Mia", ["mia.png"])
        library.add("Leo", ["leo.png", "leo2.png"])

        reloaded = CharacterLibrary(library.path)
        assert [c.name for c in reloaded.list()] == ["Mia", "Leo"]

    def test_add_replaces_same_name(self, library: CharacterLibrary):
        """Adding a name again replaces the character, ignoring case."""
        library.add("Mia", ["old.png"])
        library.add("MIA", ["new.png"])

        assert len(library.list()) == 1
        assert library.get("mia").images == ["new.png"]

    @pytest.mark.parametrize("images", [[], ["1.png", "2.png", "3.png", "4.png"]])
    def test_add_image_count(self, library: CharacterLibrary, images):
        """A character needs 1-3 reference images."""
        with pytest.raises(InvalidJobError):
            library.add("Mia", images)

    def test_add_empty_name(self, library: CharacterLibrary):
        with pytest.raises(InvalidJobError):
            library.add("  ", ["mia.png"])

    def test_get_missing(self, library: CharacterLibrary):
        with pytest.raises(NotFoundError):
            library.get("Nobody")

    def test_remove(self, library: CharacterLibrary):
        library.add("Mia", ["mia.png"])

        assert library.remove("mia") is True
        assert library.remove("mia") is False
        assert CharacterLibrary(library.path).list() == []

    def test_corrupt_file(self, tmp_path: Path):
        path = tmp_path / "characters.json"
        path.write_text("not json")

        with pytest.raises(StorageError):
            CharacterLibrary(path).list()

    @pytest.mark.parametrize("document", [["Mia"], {"characters": "Mia"}])
    def test_unexpected_layout(self, tmp_path: Path, document):
        """Valid JSON that is not a character library raises StorageError."""
        path = tmp_path / "characters.json"
        path.write_text(json.dumps(document))

        with pytest.raises(StorageError):
            CharacterLibrary(path).list()

    def test_invalid_entries_skipped(self, tmp_path: Path):
        path = tmp_path / "characters.json"
        path.write_text(json.dumps({
            "version": "1.0.0",
            "characters": [
                {"images": ["x.png"]},
                "Leo",
                {"name": 7, "images": ["7.png"]},
                {"name": "Mia", "images": ["mia.png"]},
            ],
        }))

        assert [c.name for c in CharacterLibrary(path).list()] == ["Mia"]


class TestPromptMatching:
    """Tests for building character-video payloads from prompts."""

    @pytest.fixture
    def cast(self, library: CharacterLibrary) -> CharacterLibrary:
        library.add("Mia", ["mia.png", "mia-side.png"])
        library.add("Leo", ["leo.png"])
        library.add("Ava", ["ava.png"])
        library.add("Sam", ["sam.png"])
        return library

    def test_mentioned_case_insensitive(self, cast: CharacterLibrary):
        """Names match regardless of case."""
        names = [c.name for c in cast.mentioned_in("mia and LEO walk on the beach")]
        assert names == ["Mia", "Leo"]

    def test_payload_for_prompt(self, cast: CharacterLibrary):
        """Each mentioned character contributes its first image."""
        payload = cast.payload_for_prompt("  Mia waves at Leo ")

        assert payload == {
            "characters": [
                {"name": "Mia", "image": "mia.png"},
                {"name": "Leo", "image": "leo.png"},
            ],
            "prompt": "Mia waves at Leo",
        }

    def test_payload_builds_valid_job(self, cast: CharacterLibrary):
        job = Job.create(JobKind.CHARACTER_VIDEO, cast.payload_for_prompt("Ava dances"))
        assert job.describe() == "character_video [Ava] Ava dances"

    def test_no_characters_mentioned(self, cast: CharacterLibrary):
        with pytest.raises(InvalidJobError, match="No characters"):
            cast.payload_for_prompt("An empty street at night")

    def test_too_many_characters(self, cast: CharacterLibrary):
        with pytest.raises(InvalidJobError, match="Too many characters"):
            cast.payload_for_prompt("Mia, Leo, Ava and Sam have a picnic")
