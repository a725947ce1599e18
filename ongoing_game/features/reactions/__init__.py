"""Side effects driven by the session and the loaded state."""

from .end_of_game import EndOfGameRecorder
from .tagged_players import REMINDER_MESSAGE_TYPE, TaggedPlayerReminder, format_reminder

__all__ = ["EndOfGameRecorder", "REMINDER_MESSAGE_TYPE", "TaggedPlayerReminder", "format_reminder"]
