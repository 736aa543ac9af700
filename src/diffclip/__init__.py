"""diffclip — collect filtered git diffs from a workspace into one clipboard-ready report."""

__version__ = "0.1.0"
