"""Parindent: a minimal indenter for Lisp code (e.g. Clojure)."""

__version__ = "1.0.0"
