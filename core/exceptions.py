"""
FORMCOACH Error Taxonomy

Only configuration problems are raised to callers. Degenerate geometry,
occluded frames and feedback delivery failures are absorbed where they occur.
"""


class FormCoachError(Exception):
    """Base class for all evaluation core errors."""


class ConfigurationError(FormCoachError):
    """
    Invalid static configuration.

    Raised for an unknown exercise id at session creation, and while building
    the profile registry or message catalog. Never raised mid-session.
    """

    def __init__(self, message: str, exercise_id: str = None):
        super().__init__(message)
        self.exercise_id = exercise_id
