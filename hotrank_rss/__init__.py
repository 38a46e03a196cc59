"""Render the 36Kr hot ranking as an RSS 2.0 feed."""
