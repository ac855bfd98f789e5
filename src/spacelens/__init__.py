"""spacelens - find where your disk space went and trash it safely."""

__version__ = "0.1.0"
