"""
Data models for the photo editor
"""

from .schemas import (
    BackgroundPreset,
    PoseAction,
    ImageSlot,
    SelectionState,
    GenerationRequest,
    GenerationProgress
)

__all__ = [
    'BackgroundPreset',
    'PoseAction',
    'ImageSlot',
    'SelectionState',
    'GenerationRequest',
    'GenerationProgress'
]
