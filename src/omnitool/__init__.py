"""OmniTool — TOTP authenticator core and account registry."""

__version__ = "0.1.0"
