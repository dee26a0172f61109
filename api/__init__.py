"""Boomerang web service."""
