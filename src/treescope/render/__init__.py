"""Rendering backend and video encoding."""
