"""Front-end adapters and back-end port implementations."""
