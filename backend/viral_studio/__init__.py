"""Daily viral-video selection and production fan-out service."""
