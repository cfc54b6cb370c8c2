"""
Prompt builder

Renders the instruction sent to Gemini from the page selections. Pure: the
same selections always give the same string.
"""

from models.schemas import BackgroundPreset, PoseAction

PROMPT_TEMPLATE = (
    "Create a new, single, photorealistic image featuring the two people from the uploaded photos. "
    "Crucially, you must preserve their exact faces and physical appearances from the original photos "
    "without any changes to their identities. "
    "Place them in a pose where they are {pose}. "
    "{outfit} "
    "Ensure the lighting is soft and cohesive across the entire image. "
    "{background}"
)

POSE_DESCRIPTIONS = {
    PoseAction.HUG: "hugging each other lovingly and naturally",
    PoseAction.KISS: "kissing each other romantically",
}

NEW_OUTFIT_CLAUSE = (
    "Also, dress them in new, elegant, and matching outfits that complement "
    "the background and the romantic pose."
)
SAME_OUTFIT_CLAUSE = "They should be wearing the same clothes as in their original photos."


def outfit_clause(suggest_outfit_change: bool) -> str:
    return NEW_OUTFIT_CLAUSE if suggest_outfit_change else SAME_OUTFIT_CLAUSE


def build_prompt(background, suggest_outfit_change, action) -> str:
    """
    Build the generation prompt.

    Args:
        background: BackgroundPreset or its key (e.g. "garden")
        suggest_outfit_change: Dress both people in new matching outfits
        action: PoseAction or its key ("hug" / "kiss")

    Returns:
        str: Prompt text

    Raises:
        ValidationError: If the background or action key is unknown
    """
    preset = BackgroundPreset.from_key(background)
    pose = PoseAction.from_key(action)

    return PROMPT_TEMPLATE.format(
        pose=POSE_DESCRIPTIONS[pose],
        outfit=outfit_clause(bool(suggest_outfit_change)),
        background=preset.instruction,
    )
