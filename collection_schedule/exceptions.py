"""
This module defines custom exceptions for the collection schedule application.
"""


class DataStoreError(Exception):
    """Custom exception for errors while talking to the remote catalog."""

    pass


class InvalidScheduleDateError(ValueError):
    """Raised when a schedule rule carries an unparsable start or end date."""

    pass
