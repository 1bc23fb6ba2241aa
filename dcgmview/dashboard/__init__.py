"""dcgmview terminal dashboard package."""

from .app import DashboardLoop, TerminalSession
from .theme import ThemePreferences

__all__ = ["DashboardLoop", "TerminalSession", "ThemePreferences"]
