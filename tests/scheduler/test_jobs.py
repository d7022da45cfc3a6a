"""Tests for the job model."""

from uuid import UUID

import pytest

from flow_automator.exceptions import InvalidJobError
from flow_automator.scheduler.jobs import (
    MAX_CHARACTERS,
    CharacterRef,
    CharacterVideoPayload,
    ImageToVideoPayload,
    Job,
    JobKind,
    StartToEndPayload,
    TextToVideoPayload,
    build_payload,
    parse_kind,
    payload_to_dict,
)


class TestParseKind:
    """Tests for kind name parsing."""

    def test_parse_string(self) -> None:
        """Kind names map to JobKind members."""
        assert parse_kind("text_to_video") is JobKind.TEXT_TO_VIDEO
        assert parse_kind("character_video") is JobKind.CHARACTER_VIDEO

    def test_parse_enum_passthrough(self) -> None:
        """JobKind members are returned unchanged."""
        assert parse_kind(JobKind.START_TO_END) is JobKind.START_TO_END

    def test_unknown_kind(self) -> None:
        """Unknown names raise InvalidJobError listing the valid kinds."""
        with pytest.raises(InvalidJobError) as exc_info:
            parse_kind("music_video")
        assert "image_to_video" in str(exc_info.value)


class TestBuildPayload:
    """Tests for payload validation."""

    def test_text_payload(self) -> None:
        """Text jobs need a prompt, which is stripped."""
        payload = build_payload("text_to_video", {"prompt": "  A red fox  "})
        assert payload == TextToVideoPayload(prompt="A red fox")

    @pytest.mark.parametrize("data", [{}, {"prompt": ""}, {"prompt": "   "}, {"prompt": 42}])
    def test_text_payload_requires_prompt(self, data: dict) -> None:
        """Missing, blank or non-string prompts are rejected."""
        with pytest.raises(InvalidJobError):
            build_payload(JobKind.TEXT_TO_VIDEO, data)

    def test_image_payload(self) -> None:
        """Image jobs need an image; the prompt is optional."""
        payload = build_payload("image_to_video", {"image": "/tmp/a.png"})
        assert payload == ImageToVideoPayload(image="/tmp/a.png", prompt="")

    def test_image_payload_requires_image(self) -> None:
        """An image job without an image is rejected."""
        with pytest.raises(InvalidJobError):
            build_payload("image_to_video", {"prompt": "zoom in"})

    def test_start_to_end_payload(self) -> None:
        """Frame jobs need both frames."""
        payload = build_payload(
            "start_to_end",
            {"start_frame": "s.png", "end_frame": "e.png", "prompt": "morph"},
        )
        assert payload == StartToEndPayload("s.png", "e.png", "morph")

        with pytest.raises(InvalidJobError):
            build_payload("start_to_end", {"start_frame": "s.png"})

    def test_character_payload(self) -> None:
        """Character jobs carry 1-3 named references."""
        payload = build_payload(
            "character_video",
            {
                "characters": [{"name": "Mia", "image": "mia.png"}],
                "prompt": "Mia waves",
            },
        )
        assert isinstance(payload, CharacterVideoPayload)
        assert payload.characters == (CharacterRef("Mia", "mia.png"),)

    @pytest.mark.parametrize("count", [0, MAX_CHARACTERS + 1])
    def test_character_count_limits(self, count: int) -> None:
        """Zero or more than three characters are rejected."""
        characters = [{"name": f"C{i}", "image": f"{i}.png"} for i in range(count)]
        with pytest.raises(InvalidJobError):
            build_payload("character_video", {"characters": characters, "prompt": "x"})

    def test_character_entry_needs_image(self) -> None:
        """Each character reference needs an image."""
        with pytest.raises(InvalidJobError):
            build_payload("character_video", {"characters": [{"name": "Mia"}]})

    def test_payload_instance_accepted(self) -> None:
        """A ready payload instance of the right type is accepted."""
        payload = TextToVideoPayload(prompt="ready")
        assert build_payload("text_to_video", payload) == payload

    def test_payload_instance_kind_mismatch(self) -> None:
        """A payload instance of another kind is rejected."""
        with pytest.raises(InvalidJobError):
            build_payload("image_to_video", TextToVideoPayload(prompt="wrong"))


class TestPayloadToDict:
    """Tests for payload serialization."""

    def test_simple_payload(self) -> None:
        assert payload_to_dict(ImageToVideoPayload("a.png", "p")) == {"image": "a.png", "prompt": "p"}

    def test_character_payload(self) -> None:
        """Character references serialize as a list of dicts."""
        payload = CharacterVideoPayload((CharacterRef("Mia", "mia.png"),), "Mia waves")
        assert payload_to_dict(payload) == {
            "characters": [{"name": "Mia", "image": "mia.png"}],
            "prompt": "Mia waves",
        }


class TestJob:
    """Tests for the Job dataclass."""

    def test_create(self) -> None:
        """Job.create validates and assigns an id."""
        job = Job.create("text_to_video", {"prompt": "A red fox"})

        assert job.kind is JobKind.TEXT_TO_VIDEO
        assert job.prompt == "A red fox"
        assert isinstance(job.job_id, UUID)

    def test_unique_ids(self) -> None:
        first = Job.create("text_to_video", {"prompt": "a"})
        second = Job.create("text_to_video", {"prompt": "a"})
        assert first.job_id != second.job_id

    def test_describe_truncates(self) -> None:
        """Long prompts are shortened for display."""
        job = Job.create("text_to_video", {"prompt": "x" * 100})
        description = job.describe()

        assert description.startswith("text_to_video ")
        assert description.endswith("...")
        assert len(description) < 100

    def test_describe_character_job(self) -> None:
        """Character jobs list the character names."""
        job = Job.create(
            "character_video",
            {
                "characters": [
                    {"name": "Mia", "image": "mia.png"},
                    {"name": "Leo", "image": "leo.png"},
                ],
                "prompt": "Mia and Leo dance",
            },
        )
        assert job.describe() == "character_video [Mia, Leo] Mia and Leo dance"

    def test_dict_round_trip(self) -> None:
        """A job restored from its dict form is equal to the original."""
        job = Job.create(
            "start_to_end",
            {"start_frame": "s.png", "end_frame": "e.png", "prompt": "dawn"},
        )
        restored = Job.from_dict(job.to_dict())

        assert restored == job

    def test_from_dict_invalid_payload(self) -> None:
        """Stored payloads are validated again on load."""
        with pytest.raises(InvalidJobError):
            Job.from_dict({"kind": "text_to_video", "payload": {}})
