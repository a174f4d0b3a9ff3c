"""Credential and session authority: accounts, bearer tokens, refresh-token lifecycle."""

__version__ = "0.1.0"
