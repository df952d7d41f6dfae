"""Command-line interface for dir2tar."""
