"""Cross-session memory harness for single-shot coding assistant runs."""

__version__ = "0.1.0"

__all__ = ["__version__"]
