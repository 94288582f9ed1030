"""User identity service for the restaurant-reservation platform.

Authenticates users against the Cognito hosted UI, provisions local user
records on first login and serves profile endpoints.
"""

__version__ = "0.1.0"
