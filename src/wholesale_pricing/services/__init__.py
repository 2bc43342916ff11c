"""Services subpackage - tier configuration management."""
