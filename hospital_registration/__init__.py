"""
Hospital Registration

A FastAPI-based service that books patients into department schedules,
assigns each registration to the least-loaded doctor of the department and
tracks its progress through status changes and milestones.
"""

__version__ = "1.0.0"
