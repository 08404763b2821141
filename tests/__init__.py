"""Tests for asset-crusher."""
