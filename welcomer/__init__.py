"""Welcomer - publish Markdown templates to Discord channels through webhooks."""

__version__ = "0.1.0"
