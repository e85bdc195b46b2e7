"""sitetext: turn untrusted web pages into clean, sectioned text."""

__version__ = "0.1.0"
