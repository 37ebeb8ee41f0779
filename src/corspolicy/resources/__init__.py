"""Packaged resource files for corspolicy."""
