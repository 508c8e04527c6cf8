"""Core time entry lifecycle, resolution and log query."""
