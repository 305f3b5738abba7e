"""Command line interface for Restaurant Tracker."""
