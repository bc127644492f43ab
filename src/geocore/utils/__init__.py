"""Shared utilities for geocore."""
