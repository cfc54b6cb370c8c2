"""
Data schemas for the photo editor

Selection state, upload slots and the fixed background/pose tables.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from services.errors import ValidationError


class BackgroundPreset(Enum):
    """Fixed set of background choices offered on the page"""

    WHITE = "white"
    GARDEN = "garden"
    PARK = "park"
    HOME = "home"

    @property
    def label(self) -> str:
        return _BACKGROUND_TABLE[self][0]

    @property
    def instruction(self) -> str:
        return _BACKGROUND_TABLE[self][1]

    @classmethod
    def from_key(cls, key) -> "BackgroundPreset":
        """
        Look up a preset by its key.

        Raises:
            ValidationError: If the key is not one of the presets
        """
        if isinstance(key, cls):
            return key
        try:
            return cls(key)
        except ValueError:
            raise ValidationError(f"Unknown background preset: {key!r}") from None


_BACKGROUND_TABLE = {
    BackgroundPreset.WHITE: (
        "Studio White",
        "Replace the background with a smooth white one.",
    ),
    BackgroundPreset.GARDEN: (
        "Lush Garden",
        "Replace the background with a beautiful lush garden during daytime.",
    ),
    BackgroundPreset.PARK: (
        "City Park",
        "Replace the background with a scenic city park at sunset.",
    ),
    BackgroundPreset.HOME: (
        "Luxury Home",
        "Replace the background with the interior of a luxurious modern home.",
    ),
}


class PoseAction(Enum):
    """Poses the two people can be composed into"""

    HUG = "hug"
    KISS = "kiss"

    @property
    def label(self) -> str:
        return "Generate Hug" if self is PoseAction.HUG else "Generate Kiss"

    @classmethod
    def from_key(cls, key) -> "PoseAction":
        if isinstance(key, cls):
            return key
        try:
            return cls(key)
        except ValueError:
            raise ValidationError(f"Unknown action: {key!r}") from None


@dataclass
class ImageSlot:
    """One of the two upload positions"""

    filename: Optional[str] = None
    preview_url: Optional[str] = None
    base64_data: Optional[str] = None
    mime_type: Optional[str] = None

    @property
    def is_filled(self) -> bool:
        return self.preview_url is not None and self.base64_data is not None

    @property
    def is_ready(self) -> bool:
        """True when the slot can be sent to the generator"""
        return bool(self.base64_data) and bool(self.mime_type)

    def to_dict(self) -> dict:
        return {
            "filename": self.filename,
            "preview_url": self.preview_url,
            "mime_type": self.mime_type,
            "filled": self.is_filled,
        }


@dataclass
class SelectionState:
    """
    Everything one browser session has selected so far.

    Mutated only through services.editor, under ``lock``.
    """

    session_id: str
    slots: dict = field(default_factory=lambda: {1: ImageSlot(), 2: ImageSlot()})
    background: BackgroundPreset = BackgroundPreset.WHITE
    suggest_outfit_change: bool = False
    loading_action: Optional[PoseAction] = None
    error: Optional[str] = None
    result_image: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    last_updated: datetime = field(default_factory=datetime.now)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    @property
    def is_loading(self) -> bool:
        return self.loading_action is not None

    @property
    def can_generate(self) -> bool:
        """Both slots hold a finished upload and nothing is in flight"""
        return all(slot.is_ready for slot in self.slots.values()) and not self.is_loading

    def slot(self, slot_number: int) -> ImageSlot:
        if slot_number not in self.slots:
            raise ValidationError(f"Invalid photo slot: {slot_number}")
        return self.slots[slot_number]

    def touch(self) -> None:
        self.last_updated = datetime.now()

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "slots": {str(n): s.to_dict() for n, s in self.slots.items()},
            "background": self.background.value,
            "suggest_outfit_change": self.suggest_outfit_change,
            "loading_action": self.loading_action.value if self.loading_action else None,
            "error": self.error,
            "result_image": self.result_image,
            "can_generate": self.can_generate,
        }


@dataclass(frozen=True)
class GenerationRequest:
    """Inputs for one call to the image generator, built fresh per call"""

    base64_img1: str
    mime_type1: str
    base64_img2: str
    mime_type2: str
    prompt: str

    @classmethod
    def from_state(cls, state: SelectionState, prompt: str) -> "GenerationRequest":
        first, second = state.slot(1), state.slot(2)
        return cls(
            base64_img1=first.base64_data,
            mime_type1=first.mime_type,
            base64_img2=second.base64_data,
            mime_type2=second.mime_type,
            prompt=prompt,
        )


@dataclass
class GenerationProgress:
    """Progress update pushed to the page over Socket.IO"""

    step: str
    message: str
    progress_percent: int
    details: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "step": self.step,
            "message": self.message,
            "progress_percent": self.progress_percent,
            "details": self.details,
        }
