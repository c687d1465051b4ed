"""Process lifecycle: CLI parsing, startup validation and the sync loop."""
