"""Boards, lists and cards with ownership checks and drag-and-drop ordering."""

__version__ = "1.0.0"
