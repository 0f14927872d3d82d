"""Command line interface for stagewright."""
