"""Interactive control row attached to delivered generations.

The layout is built once per record and rendered by each chat channel into
its own keyboard primitive.
"""

from dataclasses import dataclass
from typing import List, Tuple

from infrastructure.notifications.models import GenerationRecord

RATINGS: Tuple[Tuple[str, str], ...] = (
    ("beautiful", "😻"),
    ("funny", "😹"),
    ("negative", "😿"),
)


@dataclass(frozen=True)
class ControlButton:
    """One button: the visible label and the callback payload it carries."""

    label: str
    callback_data: str


ControlLayout = List[List[ControlButton]]


def rerun_label(rerun_count: int) -> str:
    return f"↻{rerun_count}" if rerun_count > 0 else "↻"


def build_control_layout(record: GenerationRecord) -> ControlLayout:
    """Rating row followed by the hide/info/tweak/rerun row."""
    generation_id = record.id
    ratings = [
        ControlButton(label=emoji, callback_data=f"rate_gen:{generation_id}:{rating}")
        for rating, emoji in RATINGS
    ]
    actions = [
        ControlButton(label="-", callback_data="hide_menu"),
        ControlButton(label="ℹ︎", callback_data=f"view_gen_info:{generation_id}"),
        ControlButton(label="✎", callback_data=f"tweak_gen:{generation_id}"),
        ControlButton(
            label=rerun_label(record.metadata.rerun_count),
            callback_data=f"rerun_gen:{generation_id}",
        ),
    ]
    return [ratings, actions]
