"""Command-line task tracker with Jira epic progress reports."""

__version__ = "0.1.0"
