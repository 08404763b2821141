"""Tests for the content processors."""
