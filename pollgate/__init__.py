"""pollgate -- authorization and content-moderation core for a polling app."""

__version__ = "0.1.0"
