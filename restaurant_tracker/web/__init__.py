"""Web API for Restaurant Tracker."""
