"""Policy subpackage - release channel advancement resolution."""
