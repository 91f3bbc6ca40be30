"""Package version, from installed metadata when available."""

__version__ = "0.1.0"


def get_version() -> str:
    """Get gloam version from package metadata or fall back to __version__."""
    try:
        from importlib.metadata import version

        return version("gloam")
    except Exception:
        # Not installed as a package
        return __version__
