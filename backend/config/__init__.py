"""Configuration modules for the lending backend."""
