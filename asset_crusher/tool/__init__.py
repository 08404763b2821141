"""Command line tool for asset-crusher."""
