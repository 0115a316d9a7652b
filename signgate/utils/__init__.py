"""Utility helpers for SignGate."""
