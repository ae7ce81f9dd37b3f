"""Place lifecycle orchestration."""
