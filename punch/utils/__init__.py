"""Utility functions for punch."""
