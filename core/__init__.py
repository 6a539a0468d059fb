"""Shared clock and configuration helpers."""
