"""myday-voice: voice commands for the MyDay planner."""

__version__ = "0.1.0"
