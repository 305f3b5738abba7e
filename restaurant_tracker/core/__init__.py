"""Core domain models for Restaurant Tracker."""
