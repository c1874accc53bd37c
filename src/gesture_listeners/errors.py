"""Exceptions raised by gesture_listeners."""


class ConfigurationError(ValueError):
    """Invalid listener or recognizer configuration.

    Raised at construction time so a bad listener never reaches the frame loop.
    """
