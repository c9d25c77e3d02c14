"""Logging configuration module."""
