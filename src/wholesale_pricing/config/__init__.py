"""Configuration subpackage - settings and logging setup."""
