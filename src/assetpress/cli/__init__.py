"""Command line interface for Assetpress."""
