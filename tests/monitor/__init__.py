"""Tests for the monitor module."""
