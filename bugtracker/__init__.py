"""
Bug Tracker Web: REST API for tracking bugs.
"""
__version__ = "1.0.0"
