"""Utility helpers for offline-sync."""
