"""Core domain package for stormwatch.

Core contains alert normalization, deduplication, quiet hours, and the
coordinator loop without any HTTP, Telegram, or file-system code, keeping
the alerting logic portable.
"""
