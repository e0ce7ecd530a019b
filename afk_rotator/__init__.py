"""
afk-rotator: perpetual presence on a game server.

Keeps exactly one session alive at a time, rotates through a ring of
credentials, and drives each session with scripted anti-idle behaviors
until it ends.
"""

__version__ = "0.1.0"
