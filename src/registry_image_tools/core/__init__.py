"""Registry protocol client and its building blocks."""
