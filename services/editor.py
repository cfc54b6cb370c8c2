"""
Editor orchestration

Every change to a SelectionState goes through the functions in this module.
Failures are turned into a single message in ``state.error``; the state is
always left interactive afterwards.
"""

import structlog

from models.schemas import (
    BackgroundPreset,
    GenerationProgress,
    GenerationRequest,
    ImageSlot,
    PoseAction,
    SelectionState,
)
from .errors import GenerationInProgressError, IngestionError, ValidationError
from .gemini_generator import generate_edited_image
from .image_ingestion import ingest_upload
from .prompt_builder import build_prompt
from .utils import decode_base64, parse_data_url, to_data_url

logger = structlog.get_logger(__name__)

MISSING_UPLOADS_MESSAGE = "Please upload both photos before generating."
BUSY_MESSAGE = "A generation is already in progress."
GENERATION_FAILED_PREFIX = "Generation failed:"
UNKNOWN_ERROR_MESSAGE = "An unknown error occurred."


def upload_image(state: SelectionState, slot_number: int, stream, filename, content_type,
                 preview_store) -> SelectionState:
    """
    Ingest an upload into one slot.

    On success the slot is replaced and its previous preview released. On a
    read failure the slot keeps whatever it held before and ``state.error``
    is set.

    Raises:
        ValidationError: If the upload is not an image; the state is untouched
    """
    state.slot(slot_number)

    try:
        ingested = ingest_upload(stream, filename, content_type, preview_store)
    except IngestionError as e:
        logger.warning("Upload rejected", session_id=state.session_id, slot=slot_number, error=str(e))
        with state.lock:
            state.error = str(e)
            state.touch()
        return state

    with state.lock:
        previous = state.slots[slot_number]
        state.slots[slot_number] = ImageSlot(
            filename=ingested.filename,
            preview_url=ingested.preview_url,
            base64_data=ingested.base64_data,
            mime_type=ingested.mime_type,
        )
        state.touch()

    preview_store.release(previous.preview_url)
    return state


def delete_image(state: SelectionState, slot_number: int, preview_store) -> SelectionState:
    """Release a slot's preview and return it to the empty upload prompt"""
    with state.lock:
        previous = state.slot(slot_number)
        state.slots[slot_number] = ImageSlot()
        state.touch()

    preview_store.release(previous.preview_url)
    return state


def set_background(state: SelectionState, key) -> SelectionState:
    """
    Select a background preset.

    Raises:
        ValidationError: If the key is not a known preset
    """
    preset = BackgroundPreset.from_key(key)
    with state.lock:
        state.background = preset
        state.touch()
    return state


def set_outfit_change(state: SelectionState, enabled: bool) -> SelectionState:
    if not isinstance(enabled, bool):
        raise ValidationError("suggest_outfit_change must be true or false")
    with state.lock:
        state.suggest_outfit_change = enabled
        state.touch()
    return state


def reset(state: SelectionState, preview_store) -> SelectionState:
    """Clear both slots, the result and any error"""
    for slot_number in list(state.slots):
        delete_image(state, slot_number, preview_store)

    with state.lock:
        state.error = None
        state.result_image = None
        state.touch()
    return state


def _begin_generation(state: SelectionState, action: PoseAction):
    """
    Move the state into Generating(action) if the guards allow it.

    Returns:
        GenerationRequest, or None when uploads are missing

    Raises:
        GenerationInProgressError: If a generation is already running; the
            running one is left undisturbed
    """
    with state.lock:
        if state.is_loading:
            raise GenerationInProgressError(BUSY_MESSAGE)

        if not all(slot.is_ready for slot in state.slots.values()):
            state.error = MISSING_UPLOADS_MESSAGE
            return None

        prompt = build_prompt(state.background, state.suggest_outfit_change, action)
        request = GenerationRequest.from_state(state, prompt)

        state.loading_action = action
        state.error = None
        state.result_image = None
        state.touch()

    return request


def generate(state: SelectionState, action, generator=None,
             progress_callback=None) -> SelectionState:
    """
    Run one generation for the session.

    Args:
        state: Session state
        action: PoseAction or its key
        generator: Callable with the signature of generate_edited_image
            (defaults to generate_edited_image)
        progress_callback: Optional callback receiving GenerationProgress

    Returns:
        The same state, idle again, holding either a result or an error
    """
    action = PoseAction.from_key(action)
    generator = generator or generate_edited_image

    request = _begin_generation(state, action)
    if request is None:
        logger.info("Generation not started", session_id=state.session_id, reason=state.error)
        return state

    def report(step, message, percent, **details):
        if progress_callback:
            progress_callback(GenerationProgress(
                step=step,
                message=message,
                progress_percent=percent,
                details=details,
            ))

    logger.info(
        "Generation started",
        session_id=state.session_id,
        action=action.value,
        background=state.background.value,
        suggest_outfit_change=state.suggest_outfit_change,
    )
    try:
        report("generating", "Generating...", 10, action=action.value)
        result_base64 = generator(
            request.base64_img1,
            request.mime_type1,
            request.base64_img2,
            request.mime_type2,
            request.prompt,
        )
    except Exception as e:
        message = str(e) or UNKNOWN_ERROR_MESSAGE
        with state.lock:
            state.error = f"{GENERATION_FAILED_PREFIX} {message}"
        logger.exception("Generation failed", session_id=state.session_id, action=action.value)
        report("error", state.error, 0, action=action.value)

    else:
        with state.lock:
            state.result_image = to_data_url(result_base64, "image/png")
            state.error = None
        logger.info("Generation complete", session_id=state.session_id, action=action.value)
        report("complete", "Your creation is ready", 100, action=action.value)

    finally:
        with state.lock:
            state.loading_action = None
            state.touch()

    return state


def result_bytes(state: SelectionState) -> tuple[bytes, str]:
    """
    Decode the generated image for download.

    Returns:
        Tuple of (image_bytes, mime_type)

    Raises:
        ValidationError: If there is no generated image
    """
    with state.lock:
        result_image = state.result_image

    if not result_image:
        raise ValidationError("There is no generated image yet.")

    mime_type, base64_data = parse_data_url(result_image)
    return decode_base64(base64_data), mime_type
