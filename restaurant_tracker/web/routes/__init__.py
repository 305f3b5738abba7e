"""Route modules for the Restaurant Tracker API."""
