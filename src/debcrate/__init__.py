"""debcrate: Build-order planning and Debian dependency translation for Rust crates."""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"
