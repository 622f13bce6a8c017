"""Services subpackage - session-owned state such as the cart."""
