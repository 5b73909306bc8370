"""Adapters connecting the core to HTTP, Telegram, and the config file."""
