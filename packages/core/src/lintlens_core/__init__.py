"""Attribute static-analysis findings to the pull requests that introduced them."""
