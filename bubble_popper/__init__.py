"""
Bubble Popper Package
=====================

This package contains the session engine for Bubble Popper: level
progression, bubble fields, particle effects, scoring and rewards.

Rendering and audio are external collaborators that read snapshots from
the engine and receive tone requests from it.

All tunable parameters are in game_config.yaml.
"""
