"""
Sightings - moderated photo and location observations.

Revision-controlled entity store with role-based access control.
"""

__version__ = "0.4.0"
