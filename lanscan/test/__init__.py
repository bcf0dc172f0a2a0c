"""Shared fakes for lanscan tests."""
