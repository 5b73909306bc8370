"""Error taxonomy shared by the core and adapters.

None of these are fatal to the coordinator loop; each one maps to a
"log and carry on" branch in the handler that meets it.
"""

from __future__ import annotations


class StormwatchError(Exception):
    """Base class for all stormwatch errors."""


class FeedError(StormwatchError):
    """The remote alert feed could not be fetched or decoded."""


class MalformedAlertError(StormwatchError):
    """A single feed record is missing a required field or has a bad value."""


class NotificationError(StormwatchError):
    """A notification sink failed to deliver a message."""


class ConfigError(StormwatchError):
    """The configuration file is unreadable or invalid."""
