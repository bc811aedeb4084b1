"""Integrations with programs outside ztask (the user's text editor)."""
