"""Idempotent dotfiles and prompt-library installer."""

__version__ = '0.1.0'
