"""Application state and fetch orchestration."""
