"""Test suite for the marcsync client."""
