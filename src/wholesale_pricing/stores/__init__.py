"""Collaborator ports and their CSV-backed implementations."""
