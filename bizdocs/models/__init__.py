"""Data models for business documents."""
