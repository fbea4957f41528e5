"""PySide6 desktop dashboard."""
