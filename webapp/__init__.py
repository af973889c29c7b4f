"""Flask JSON API for the running club."""
