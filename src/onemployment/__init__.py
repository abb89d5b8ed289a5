"""onemployment identity core: accounts, credentials and bearer tokens."""

__version__ = "1.0.0"
