"""Language statistics orchestration."""
