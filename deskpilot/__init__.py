"""DeskPilot - goal-driven desktop automation with learned memory."""

__version__ = "0.1.0"
