"""Helpers shared by the apps in this directory."""
