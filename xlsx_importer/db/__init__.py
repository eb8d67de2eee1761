"""Record stores and attachment sources."""
