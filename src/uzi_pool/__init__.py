"""Uzi Pool: RandomX mining pool relay for the Zeeka cryptocurrency."""

__version__ = "0.1.0"
