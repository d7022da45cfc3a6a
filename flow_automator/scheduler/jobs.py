"""Job model for the automation queue.

A job is one discrete video-generation task: a kind plus a kind-specific
payload. Jobs are immutable once created and are serialized to plain dicts
for the queue state file.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Tuple, Union
from uuid import UUID, uuid4

from flow_automator.exceptions import InvalidJobError

# A character video may reference at most this many characters.
MAX_CHARACTERS = 3


class JobKind(Enum):
    """Kinds of job the executor knows how to perform."""

    TEXT_TO_VIDEO = "text_to_video"
    IMAGE_TO_VIDEO = "image_to_video"
    START_TO_END = "start_to_end"
    CHARACTER_VIDEO = "character_video"


@dataclass(frozen=True)
class TextToVideoPayload:
    """Generate a video from a text prompt."""

    prompt: str


@dataclass(frozen=True)
class ImageToVideoPayload:
    """Animate a single image, guided by a prompt."""

    image: str
    prompt: str = ""


@dataclass(frozen=True)
class StartToEndPayload:
    """Generate a video that moves from a start frame to an end frame."""

    start_frame: str
    end_frame: str
    prompt: str = ""


@dataclass(frozen=True)
class CharacterRef:
    """A named character and the reference image used for it."""

    name: str
    image: str


@dataclass(frozen=True)
class CharacterVideoPayload:
    """Generate a video featuring 1-3 named characters."""

    characters: Tuple[CharacterRef, ...]
    prompt: str = ""


JobPayload = Union[
    TextToVideoPayload,
    ImageToVideoPayload,
    StartToEndPayload,
    CharacterVideoPayload,
]

_PAYLOAD_TYPES: Dict[JobKind, type] = {
    JobKind.TEXT_TO_VIDEO: TextToVideoPayload,
    JobKind.IMAGE_TO_VIDEO: ImageToVideoPayload,
    JobKind.START_TO_END: StartToEndPayload,
    JobKind.CHARACTER_VIDEO: CharacterVideoPayload,
}


def parse_kind(kind: Union[str, JobKind]) -> JobKind:
    """Convert a kind name to a JobKind.

    Raises:
        InvalidJobError: If the name is not a known kind
    """
    if isinstance(kind, JobKind):
        return kind
    try:
        return JobKind(kind)
    except ValueError:
        valid = ", ".join(k.value for k in JobKind)
        raise InvalidJobError(f"Unknown job kind '{kind}'. Choose from: {valid}")


def _require_text(data: Dict[str, Any], key: str, kind: JobKind) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise InvalidJobError(
            f"{kind.value} job requires a non-empty '{key}'",
            details={"kind": kind.value},
        )
    return value.strip()


def build_payload(
    kind: Union[str, JobKind],
    data: Union[JobPayload, Dict[str, Any]],
) -> JobPayload:
    """Build and validate the payload for a job kind.

    Accepts either a ready payload instance (checked against the kind) or a
    dict in the submission format, e.g. ``{"prompt": "..."}`` for text jobs
    or ``{"characters": [{"name": ..., "image": ...}], "prompt": ...}`` for
    character videos.

    Args:
        kind: Job kind or its string name
        data: Payload instance or dict of payload fields

    Returns:
        The validated payload

    Raises:
        InvalidJobError: If the payload is missing fields or does not match
            the kind
    """
    kind = parse_kind(kind)
    expected = _PAYLOAD_TYPES[kind]

    if not isinstance(data, dict):
        if not isinstance(data, expected):
            raise InvalidJobError(
                f"{type(data).__name__} is not a valid payload for {kind.value}"
            )
        # Round-trip through the dict form so instances get validated too
        data = payload_to_dict(data)

    prompt = data.get("prompt") or ""
    if not isinstance(prompt, str):
        raise InvalidJobError(f"{kind.value} prompt must be a string")
    prompt = prompt.strip()

    if kind is JobKind.TEXT_TO_VIDEO:
        return TextToVideoPayload(prompt=_require_text(data, "prompt", kind))

    if kind is JobKind.IMAGE_TO_VIDEO:
        return ImageToVideoPayload(image=_require_text(data, "image", kind), prompt=prompt)

    if kind is JobKind.START_TO_END:
        return StartToEndPayload(
            start_frame=_require_text(data, "start_frame", kind),
            end_frame=_require_text(data, "end_frame", kind),
            prompt=prompt,
        )

    raw_characters = data.get("characters") or []
    if not 1 <= len(raw_characters) <= MAX_CHARACTERS:
        raise InvalidJobError(
            f"character_video requires 1-{MAX_CHARACTERS} characters, got {len(raw_characters)}"
        )
    characters = []
    for entry in raw_characters:
        if isinstance(entry, CharacterRef):
            entry = {"name": entry.name, "image": entry.image}
        if not isinstance(entry, dict):
            raise InvalidJobError("character entries must have a name and an image")
        characters.append(
            CharacterRef(
                name=_require_text(entry, "name", kind),
                image=_require_text(entry, "image", kind),
            )
        )
    return CharacterVideoPayload(characters=tuple(characters), prompt=prompt)


def payload_to_dict(payload: JobPayload) -> Dict[str, Any]:
    """Convert a payload to its JSON-compatible dict form."""
    if isinstance(payload, CharacterVideoPayload):
        return {
            "characters": [{"name": c.name, "image": c.image} for c in payload.characters],
            "prompt": payload.prompt,
        }
    return asdict(payload)


@dataclass(frozen=True)
class Job:
    """One automation task waiting in, or taken from, the queue.

    Attributes:
        kind: What the executor should do
        payload: Kind-specific data
        job_id: Unique identifier for the job
        submitted_at: When the job was submitted
    """

    kind: JobKind
    payload: JobPayload
    job_id: UUID = field(default_factory=uuid4)
    submitted_at: datetime = field(default_factory=datetime.utcnow)

    @classmethod
    def create(
        cls,
        kind: Union[str, JobKind],
        payload: Union[JobPayload, Dict[str, Any]],
    ) -> "Job":
        """Create a job, validating the payload against its kind."""
        job_kind = parse_kind(kind)
        return cls(kind=job_kind, payload=build_payload(job_kind, payload))

    @property
    def prompt(self) -> str:
        """The prompt text of the job (empty if the kind allows none)."""
        return self.payload.prompt

    def describe(self) -> str:
        """Short one-line description for logs and tables."""
        text = self.prompt if len(self.prompt) <= 60 else self.prompt[:57] + "..."
        if isinstance(self.payload, CharacterVideoPayload):
            names = ", ".join(c.name for c in self.payload.characters)
            return f"{self.kind.value} [{names}] {text}".rstrip()
        return f"{self.kind.value} {text}".rstrip()

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the job for the queue state file."""
        return {
            "job_id": str(self.job_id),
            "kind": self.kind.value,
            "payload": payload_to_dict(self.payload),
            "submitted_at": self.submitted_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Job":
        """Restore a job serialized with :meth:`to_dict`.

        Raises:
            InvalidJobError: If the stored payload is invalid
        """
        kind = parse_kind(data["kind"])
        return cls(
            kind=kind,
            payload=build_payload(kind, data.get("payload", {})),
            job_id=UUID(data["job_id"]) if data.get("job_id") else uuid4(),
            submitted_at=(
                datetime.fromisoformat(data["submitted_at"])
                if data.get("submitted_at")
                else datetime.utcnow()
            ),
        )
