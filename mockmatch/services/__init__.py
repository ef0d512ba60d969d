"""Core matching and presence services."""
