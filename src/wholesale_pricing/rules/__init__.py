"""Tier configuration schema and row validation."""
