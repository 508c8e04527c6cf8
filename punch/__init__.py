"""
punch: a personal time tracker for the terminal.

Punch in on a task, punch out, fix past entries and list the log.
"""

__version__ = "0.1.0"
