"""Command-line front end for display-switcher."""

from .interactive_shell import InteractiveShell

__all__ = ['InteractiveShell']
