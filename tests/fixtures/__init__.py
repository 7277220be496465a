"""Shared pytest fixtures and helpers for credential linking tests."""

from .core import *  # noqa: F401,F403
