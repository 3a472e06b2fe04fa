"""Session gates for the application's routes."""
