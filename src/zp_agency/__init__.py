"""Collect and normalize a Zonaprop agency's property listings."""
