"""Config subpackage - settings and pricing configuration."""
