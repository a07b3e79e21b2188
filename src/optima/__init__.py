"""
Optima -- Output validation and line-diff core for small-model code rewrites.

Decides whether a rewrite produced by an untrusted text-generation engine may
replace the user's code, repairing truncated output and rejecting anything
that drops content or drifts too far from the original.
"""

__version__ = "1.0.0"
__author__ = "Optima Team"
