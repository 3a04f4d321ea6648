"""Copywriting frameworks and the prompts built from them."""

from __future__ import annotations

from enum import Enum
from typing import Any


class CopywritingFramework(str, Enum):
    AUTO = "auto"
    AIDA = "aida"
    PAS = "pas"
    STORYTELLING = "storytelling"


FRAMEWORK_INSTRUCTIONS = {
    CopywritingFramework.AUTO: (
        "Analyze the topic and choose the most effective persuasive structure "
        "(like AIDA, PAS, or storytelling) to structure the post."
    ),
    CopywritingFramework.AIDA: (
        "Structure the post using the AIDA (Attention, Interest, Desire, Action) framework."
    ),
    CopywritingFramework.PAS: (
        "Structure the post using the PAS (Problem, Agitate, Solution) framework."
    ),
    CopywritingFramework.STORYTELLING: (
        "Structure the post as a short, compelling narrative related to the topic."
    ),
}


def parse_framework(value: Any) -> CopywritingFramework:
    """Map a raw framework value to the enum, falling back to ``AUTO``."""
    if isinstance(value, CopywritingFramework):
        return value
    try:
        return CopywritingFramework(str(value).strip().lower())
    except ValueError:
        return CopywritingFramework.AUTO


def get_framework_instruction(framework: Any) -> str:
    return FRAMEWORK_INSTRUCTIONS[parse_framework(framework)]


def build_system_prompt(framework: Any) -> str:
    # length and hashtags are hints for the model, nothing checks them
    return (
        "You are an expert social media copywriter. "
        f"{get_framework_instruction(framework)} "
        "Write engaging and friendly content suitable for a general audience. "
        "Include relevant hashtags. Keep the post concise, under 150 words."
    )


def build_user_prompt(topic: str) -> str:
    return f'Write a Facebook post about: "{topic.strip()}".'
