"""Core building blocks: content, errors, logging and HTTP client factory."""
