"""Rack Planner — rack elevation placement, collision, movement and resize engine."""

__version__ = "0.1.0"
