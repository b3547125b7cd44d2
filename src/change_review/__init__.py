"""change-review: diff model, analysis passes and review decisions for machine-authored changes."""

from change_review._version import __version__

__all__ = ["__version__"]
