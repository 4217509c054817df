"""Game domain services: collectors, scoring, round flow and timers.

This package contains the pure(ish) game logic that the session coordinator
drives, keeping transport concerns separated from core game mechanics.
"""
