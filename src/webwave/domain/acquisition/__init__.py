"""Acquisition domain - turning external media links into uploadable audio."""
