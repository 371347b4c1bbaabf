"""Dock-grid drone coordination: path planning, conflict detection and resolution."""

__version__ = "1.0.0"
