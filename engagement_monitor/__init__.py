"""
Engagement Monitor

Tracks whether a learner is actually watching a lesson (attention events,
playback integrity, heartbeats, completion), runs proctored assessments,
and enforces per-user action quotas.
"""

__version__ = "1.0.0"
