"""Persistence for registered documents."""
