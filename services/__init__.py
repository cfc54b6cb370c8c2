"""
Photo Editor Services

This package contains service modules for the photo editor:
- errors: Error types shown to the user
- utils: Base64 and data URL helpers
- preview_store: Preview references for uploaded photos
- image_ingestion: Upload validation and encoding
- prompt_builder: Generation prompt rendering
- gemini_generator: Gemini image generation
- session_manager: Per-browser editor state
- editor: State transitions for uploads and generation
- logging_setup: structlog configuration
"""

__all__ = [
    'errors',
    'utils',
    'preview_store',
    'image_ingestion',
    'prompt_builder',
    'gemini_generator',
    'session_manager',
    'editor',
    'logging_setup',
]
