"""Synthetic data helpers."""
